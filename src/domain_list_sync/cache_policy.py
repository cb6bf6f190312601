"""
Cache & Refresh Policy.

Decides whether a refresh cycle needs a full reload of the domain list and
reads/writes the cached list through the key-value store.

A full reload is needed when any of these holds, checked in order:
1. the caller forces it
2. the in-memory domain set is empty (cold start or corrupted cache)
3. the last full reload is older than the maximum age (24 h by default)
4. the count check reports a different record count than last time

The count check only runs when none of the first three rules fired.
"""

import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .audit_logger import AuditLogger
from .config import RefreshConfig
from .enums import ReloadReason
from .exceptions import PersistenceError
from .models import CacheRecord
from .state_store import CACHED_DOMAINS, LAST_FULL_RELOAD, LAST_RECORD_COUNT, KeyValueStore


COMPONENT = "RefreshPolicy"

CountCheck = Callable[[], Awaitable[Optional[int]]]


@dataclass(frozen=True)
class ReloadDecision:
    """Outcome of the refresh policy."""

    needed: bool
    reason: ReloadReason
    record_count: Optional[int] = None


class RefreshPolicy:
    """Cache freshness rules."""

    def __init__(
        self,
        config: Optional[RefreshConfig] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._config = config or RefreshConfig()
        self._logger = logger

    @property
    def max_age_seconds(self) -> float:
        return self._config.full_reload_max_age_seconds

    def is_stale(self, cache: CacheRecord, now: float) -> bool:
        return now - cache.last_full_reload_at > self._config.full_reload_max_age_seconds

    async def evaluate(
        self,
        domain_count: int,
        cache: CacheRecord,
        now: float,
        force: bool = False,
        count_check: Optional[CountCheck] = None,
    ) -> ReloadDecision:
        """
        Decide whether a full reload is needed.

        Args:
            domain_count: Size of the in-memory domain set
            cache: The cache record loaded at startup (or after the last reload)
            now: Current time (epoch seconds)
            force: Reload unconditionally
            count_check: Async count check, awaited only when no other rule applies

        Returns:
            ReloadDecision; ``record_count`` is set when the count check ran
        """
        if force:
            return ReloadDecision(True, ReloadReason.FORCED)

        if domain_count == 0:
            self._log_info("No cached domain list, full reload", {})
            return ReloadDecision(True, ReloadReason.EMPTY)

        if self.is_stale(cache, now):
            self._log_info(
                "Last full reload is too old, full reload",
                {"age_seconds": round(now - cache.last_full_reload_at)},
            )
            return ReloadDecision(True, ReloadReason.STALE)

        if count_check is None:
            return ReloadDecision(False, ReloadReason.COUNT_UNKNOWN)

        count = await count_check()
        if count is None:
            return ReloadDecision(False, ReloadReason.COUNT_UNKNOWN)

        if count != cache.last_record_count:
            self._log_info(
                "Record count changed, full reload",
                {"previous": cache.last_record_count, "current": count},
            )
            return ReloadDecision(True, ReloadReason.COUNT_CHANGED, count)

        self._log_info(
            "No new records, using cache",
            {"domains": domain_count, "records": count},
        )
        return ReloadDecision(False, ReloadReason.UP_TO_DATE, count)

    def _log_info(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.info(COMPONENT, message, data)


class CacheRepository:
    """Loads and saves the CacheRecord through a key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], float] = time.time,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._logger = logger

    def load(self) -> CacheRecord:
        """
        Read the cached list.

        A missing, empty or malformed cache yields an empty CacheRecord,
        which makes the next refresh a cold start.
        """
        try:
            stored = self._store.get([CACHED_DOMAINS, LAST_FULL_RELOAD, LAST_RECORD_COUNT])
        except PersistenceError as e:
            if self._logger:
                self._logger.log_error("CacheRepository", "Failed to load cached domain list", e)
            return CacheRecord()

        domains = stored.get(CACHED_DOMAINS)
        if not isinstance(domains, list) or not domains:
            return CacheRecord()

        last_reload = stored.get(LAST_FULL_RELOAD) or 0
        last_count = stored.get(LAST_RECORD_COUNT) or 0
        return CacheRecord(
            domains=frozenset(d for d in domains if isinstance(d, str) and d),
            last_full_reload_at=float(last_reload) if isinstance(last_reload, (int, float)) else 0.0,
            last_record_count=int(last_count) if isinstance(last_count, int) else 0,
        )

    def save(self, domains: frozenset[str], record_count: Optional[int]) -> CacheRecord:
        """
        Persist a freshly built list.

        Raises:
            PersistenceError: If the store cannot be written
        """
        record = CacheRecord(
            domains=frozenset(domains),
            last_full_reload_at=self._clock(),
            last_record_count=record_count or 0,
        )
        self._store.set({
            CACHED_DOMAINS: sorted(record.domains),
            LAST_FULL_RELOAD: record.last_full_reload_at,
            LAST_RECORD_COUNT: record.last_record_count,
        })
        if self._logger:
            self._logger.info(
                "CacheRepository",
                "Domain list saved to cache",
                {"domains": len(record.domains), "records": record.last_record_count},
            )
        return record
