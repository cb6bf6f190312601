"""
Data models for the domain list synchronization engine.

This module defines the records fetched from the remote source, the cached
domain list, the persisted rate limit state and the refresh outcome.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .enums import ReloadReason


@dataclass(frozen=True)
class RemoteRecord:
    """One unit of remote evidence (an issue)."""

    number: int
    title: str = ""
    body: str = ""
    comment_count: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "RemoteRecord":
        """Build a record from a GitHub issue object."""
        comments = data.get("comments")
        return cls(
            number=int(data.get("number") or 0),
            title=data.get("title") or "",
            body=data.get("body") or "",
            comment_count=comments if isinstance(comments, int) else 0,
        )


@dataclass(frozen=True)
class RemoteComment:
    """A comment attached to a remote record."""

    body: str = ""


@dataclass(frozen=True)
class CacheRecord:
    """Snapshot of the last successful full reload."""

    domains: frozenset[str] = frozenset()
    last_full_reload_at: float = 0.0
    last_record_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.domains


@dataclass
class RateLimitState:
    """Whether the remote API is throttled, and until when (epoch seconds)."""

    throttled: bool = False
    reset_at: float = 0.0


@dataclass
class RefreshOutcome:
    """What a single refresh cycle did."""

    skipped: bool = False
    reloaded: bool = False
    reason: Optional[ReloadReason] = None
    domain_count: int = 0
    record_count: Optional[int] = None
    errors: list[str] = field(default_factory=list)
