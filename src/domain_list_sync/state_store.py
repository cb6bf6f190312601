"""
Key-value stores for persistent engine state.

The engine only needs ``get(keys)``, ``set(mapping)`` and change
notifications. ``MemoryStore`` keeps everything in a dict;
``JsonFileStore`` persists to a single HMAC-protected JSON document so that
tampering or a corrupted file is detected instead of silently loaded.
"""

import hashlib
import hmac
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from .exceptions import PersistenceError, TamperingError


# Keys used by the engine
CACHED_DOMAINS = "cached_domains"
LAST_FULL_RELOAD = "last_full_reload"
LAST_RECORD_COUNT = "last_record_count"
UNMATCHED_SITES = "unmatched_sites"
FULL_MONITORING = "full_monitoring"
RATE_LIMIT_HIT = "rate_limit_hit"
RATE_LIMIT_RESET_AT = "rate_limit_reset_at"

ChangeListener = Callable[[dict[str, tuple[Any, Any]]], None]


class KeyValueStore:
    """
    Base key-value store with change notification.

    Subclasses provide ``_read()`` and ``_write(data)``; listeners receive a
    mapping ``{key: (old_value, new_value)}`` containing only changed keys.
    """

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    def _read(self) -> dict[str, Any]:
        raise NotImplementedError

    def _write(self, data: dict[str, Any]) -> None:
        raise NotImplementedError

    def reset(self) -> None:
        """Forget all stored values without notifying listeners."""
        raise NotImplementedError

    def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return the stored values for the given keys (missing keys are omitted)."""
        data = self._read()
        return {key: data[key] for key in keys if key in data}

    def set(self, values: dict[str, Any]) -> None:
        """Store all values at once and notify listeners about the changed keys."""
        data = dict(self._read())
        changes = {
            key: (data.get(key), value)
            for key, value in values.items()
            if data.get(key) != value or key not in data
        }
        data.update(values)
        self._write(data)
        if changes:
            for listener in list(self._listeners):
                listener(changes)

    def add_listener(self, listener: ChangeListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def has_listener(self, listener: ChangeListener) -> bool:
        return listener in self._listeners


class MemoryStore(KeyValueStore):
    """In-memory store, used for tests and ephemeral runs."""

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        super().__init__()
        self._data: dict[str, Any] = dict(initial or {})

    def _read(self) -> dict[str, Any]:
        return self._data

    def _write(self, data: dict[str, Any]) -> None:
        self._data = data

    def reset(self) -> None:
        self._data = {}

    def snapshot(self) -> dict[str, Any]:
        return dict(self._data)


class JsonFileStore(KeyValueStore):
    """
    Persistent store with HMAC protection.

    The file holds ``{version, data, last_updated, hmac}``; the HMAC covers
    the canonical JSON of everything except itself.
    """

    VERSION = 1

    def __init__(self, file_path: Path, hmac_secret: str) -> None:
        """
        Initialize the store.

        Args:
            file_path: Path to the state file (JSON format)
            hmac_secret: Secret key for HMAC computation
        """
        super().__init__()
        self._file_path = file_path
        self._hmac_secret = hmac_secret.encode("utf-8")
        self._data: Optional[dict[str, Any]] = None

    @property
    def file_path(self) -> Path:
        return self._file_path

    def load(self) -> dict[str, Any]:
        """
        Load and validate the state file.

        Returns:
            The stored data, or an empty dict if the file does not exist

        Raises:
            TamperingError: If HMAC validation fails
            PersistenceError: If the file cannot be read or parsed
        """
        if not self._file_path.exists():
            self._data = {}
            return {}

        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Failed to parse state file: {e}",
                details={"file_path": str(self._file_path)},
            ) from e
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to read state file: {e}",
                details={"file_path": str(self._file_path)},
            ) from e

        if not isinstance(raw_data, dict) or not isinstance(raw_data.get("data", {}), dict):
            raise PersistenceError(
                code="parse_error",
                message="State file does not contain a state document",
                details={"file_path": str(self._file_path)},
            )

        stored_hmac = raw_data.get("hmac", "")
        computed_hmac = self.compute_hmac({
            "version": raw_data.get("version"),
            "data": raw_data.get("data", {}),
            "last_updated": raw_data.get("last_updated"),
        })
        if not hmac.compare_digest(str(stored_hmac), computed_hmac):
            raise TamperingError(
                code="hmac_mismatch",
                message="HMAC validation failed - state file may have been tampered with",
                details={"file_path": str(self._file_path)},
            )

        self._data = dict(raw_data.get("data", {}))
        return dict(self._data)

    def reset(self) -> None:
        """Discard in-memory state; the next write replaces the file."""
        self._data = {}

    def _read(self) -> dict[str, Any]:
        if self._data is None:
            self.load()
        return self._data

    def _write(self, data: dict[str, Any]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        document = {
            "version": self.VERSION,
            "data": data,
            "last_updated": now,
        }
        document["hmac"] = self.compute_hmac(document)

        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._file_path.with_name(self._file_path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self._file_path)
        except (OSError, TypeError) as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to write state file: {e}",
                details={"file_path": str(self._file_path)},
            ) from e

        self._data = data

    def compute_hmac(self, document: dict) -> str:
        """Compute HMAC-SHA256 over the canonical JSON of a document."""
        serialized = json.dumps(document, sort_keys=True, separators=(",", ":"))
        return hmac.new(
            self._hmac_secret,
            serialized.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
