"""
Synchronization engine.

``SyncEngine`` owns the mutable state of the system: the current domain
set, the rate limit tracker, the set of unlisted hosts seen so far and the
monitoring mode. It coordinates:
- restoring persisted state at startup
- refresh cycles (policy decision, full reload, cache persistence)
- host checks for visited URLs
- badge updates

Refresh cycles are serialized by a lock. A reload swaps the whole matcher
and persists the cache without awaiting in between, so a host check running
during a reload sees either the old or the new list, never a mix.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlsplit

import httpx

from .audit_logger import AuditLogger
from .badge import BadgePresenter, BadgeSink, BadgeView
from .cache_policy import CacheRepository, RefreshPolicy
from .config import SystemConfig
from .domain_list_builder import DomainListBuilder
from .exceptions import PersistenceError
from .matcher import DomainMatcher
from .models import CacheRecord, RefreshOutcome
from .rate_limiter import RateLimitStatus, RateLimitTracker
from .record_sources import RecordSource, create_record_source
from .retry_manager import RetryManager
from .state_store import FULL_MONITORING, UNMATCHED_SITES, JsonFileStore, KeyValueStore


COMPONENT = "SyncEngine"

# Pages that never belong to a website
IGNORED_SCHEMES = frozenset({
    "file", "about", "data", "moz-extension", "chrome-extension", "chrome",
})


class SyncEngine:
    """
    Context object for the domain list synchronization engine.

    Lifecycle: ``init()`` → any number of ``refresh()`` / ``check_host()``
    calls → ``teardown()``. Also usable as an async context manager.
    """

    def __init__(
        self,
        source: RecordSource,
        store: KeyValueStore,
        rate_limiter: RateLimitTracker,
        config: Optional[SystemConfig] = None,
        badge: Optional[BadgeSink] = None,
        logger: Optional[AuditLogger] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or SystemConfig()
        self._source = source
        self._store = store
        self._rate_limiter = rate_limiter
        self._logger = logger
        self._clock = clock

        self._badge = BadgePresenter(badge)
        self._policy = RefreshPolicy(self._config.refresh, logger=logger)
        self._cache_repository = CacheRepository(store, clock=clock, logger=logger)
        self._builder = DomainListBuilder(source, logger=logger)

        self._matcher = DomainMatcher()
        self._cache = CacheRecord()
        self._unmatched: dict[str, None] = {}
        self._full_monitoring = False
        self._monitoring_listeners: list[Callable[[bool], None]] = []
        self._refresh_lock = asyncio.Lock()
        self._initialized = False

    async def __aenter__(self) -> "SyncEngine":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.teardown()

    # Lifecycle

    async def init(self, refresh: bool = True) -> Optional[RefreshOutcome]:
        """
        Restore persisted state, then run a first (non-forced) refresh.

        Unreadable or tampered state is discarded and treated as a cold start.
        """
        self._log_info("Initializing", {})
        self._restore_state()

        self._rate_limiter.set_change_callback(self.update_badge)
        self._store.add_listener(self._on_store_changed)
        self.update_badge()
        self._initialized = True

        self._log_info(
            "Monitoring mode",
            {"full_monitoring": self._full_monitoring},
        )
        if refresh:
            return await self.refresh(False)
        return None

    async def teardown(self) -> None:
        """Detach listeners and release the record source."""
        self._store.remove_listener(self._on_store_changed)
        self._rate_limiter.set_change_callback(None)
        self._monitoring_listeners.clear()
        self._initialized = False
        await self._source.close()

    def _restore_state(self) -> None:
        try:
            stored = self._store.get([UNMATCHED_SITES, FULL_MONITORING])
        except PersistenceError as e:
            self._log_error("Stored state is unreadable, starting cold", e)
            self._store.reset()
            stored = {}

        unmatched = stored.get(UNMATCHED_SITES)
        self._unmatched = dict.fromkeys(
            site for site in (unmatched if isinstance(unmatched, list) else [])
            if isinstance(site, str)
        )
        self._full_monitoring = bool(stored.get(FULL_MONITORING, False))
        self._rate_limiter.restore()

        self._cache = self._cache_repository.load()
        self._matcher = DomainMatcher(self._cache.domains)
        if not self._cache.is_empty:
            self._log_info("Cached domain list loaded", {"domains": len(self._cache.domains)})

    # Refresh

    @property
    def refresh_in_progress(self) -> bool:
        return self._refresh_lock.locked()

    async def refresh(self, force: bool = False) -> RefreshOutcome:
        """
        Run one refresh cycle.

        Skipped entirely while throttled unless forced. Never raises: any
        failure is logged and the previous list stays authoritative.
        """
        async with self._refresh_lock:
            outcome = await self._refresh_once(force)
        outcome.domain_count = len(self._matcher)
        return outcome

    async def _refresh_once(self, force: bool) -> RefreshOutcome:
        outcome = RefreshOutcome()
        try:
            if self._rate_limiter.is_rate_limited() and not force:
                self._log_debug("Rate limit active, skipping refresh", {})
                outcome.skipped = True
                return outcome

            decision = await self._policy.evaluate(
                domain_count=len(self._matcher),
                cache=self._cache,
                now=self._clock(),
                force=force,
                count_check=self._source.get_record_count,
            )
            outcome.reason = decision.reason
            outcome.record_count = decision.record_count
            if not decision.needed:
                return outcome

            domains = await self._builder.build()
            if not domains:
                self._log_warn("No domains loaded, keeping previous list", {})
                return outcome

            record_count = decision.record_count
            if record_count is None:
                record_count = await self._source.get_record_count()
            self._apply_reload(domains, record_count)
            outcome.reloaded = True
            outcome.record_count = record_count
            self._log_info("Domain list reloaded", {"domains": len(domains)})
        except Exception as e:
            self._log_error("Refreshing the domain list failed", e)
            outcome.errors.append(str(e))
        return outcome

    def _apply_reload(self, domains: frozenset[str], record_count: Optional[int]) -> None:
        self._matcher = DomainMatcher(domains)
        try:
            self._cache = self._cache_repository.save(domains, record_count)
        except PersistenceError as e:
            self._log_error("Failed to save domain list to cache", e)
            self._cache = CacheRecord(
                domains=domains,
                last_full_reload_at=self._clock(),
                last_record_count=record_count or 0,
            )

    # Host checks

    @property
    def domains(self) -> frozenset[str]:
        return self._matcher.domains

    @property
    def cache(self) -> CacheRecord:
        return self._cache

    def is_listed(self, host: str) -> bool:
        return self._matcher.is_listed(host)

    def check_host(self, host: str) -> bool:
        """
        Classify a visited host; unlisted hosts join the unmatched set.

        Returns:
            True if the host is covered by the domain list
        """
        listed = self._matcher.is_listed(host)
        if not listed and host and host not in self._unmatched:
            self._unmatched[host] = None
            self._persist_unmatched()
            self.update_badge()
            self._log_debug("New unlisted domain", {"host": host})
        return listed

    def process_url(self, url: str) -> Optional[bool]:
        """
        Check the host of a visited URL.

        Returns:
            The listing result, or None when the URL has no checkable host
        """
        if not url or not isinstance(url, str):
            return None
        try:
            parts = urlsplit(url.strip())
            host = parts.hostname
        except ValueError as e:
            self._log_warn("Could not process URL", {"url": url, "error": str(e)})
            return None

        if parts.scheme.lower() in IGNORED_SCHEMES or not host:
            return None
        return self.check_host(host)

    def get_unmatched(self) -> list[str]:
        return list(self._unmatched)

    def clear_unmatched(self) -> None:
        self._unmatched = {}
        self._persist_unmatched()
        self.update_badge()

    def _persist_unmatched(self) -> None:
        try:
            self._store.set({UNMATCHED_SITES: list(self._unmatched)})
        except PersistenceError as e:
            self._log_error("Failed to save unlisted domains", e)

    # Monitoring mode

    @property
    def full_monitoring(self) -> bool:
        return self._full_monitoring

    def set_full_monitoring(self, enabled: bool) -> None:
        try:
            self._store.set({FULL_MONITORING: bool(enabled)})
        except PersistenceError as e:
            self._log_error("Failed to save monitoring mode", e)
        self._set_monitoring(bool(enabled))

    def add_monitoring_listener(self, listener: Callable[[bool], None]) -> None:
        self._monitoring_listeners.append(listener)

    def _set_monitoring(self, enabled: bool) -> None:
        if enabled == self._full_monitoring:
            return
        self._full_monitoring = enabled
        self._log_info("Monitoring mode changed", {"full_monitoring": enabled})
        for listener in list(self._monitoring_listeners):
            listener(enabled)

    def _on_store_changed(self, changes: dict[str, tuple[Any, Any]]) -> None:
        if FULL_MONITORING in changes:
            self._set_monitoring(bool(changes[FULL_MONITORING][1]))
        if UNMATCHED_SITES in changes:
            new_value = changes[UNMATCHED_SITES][1]
            sites = new_value if isinstance(new_value, list) else []
            if sites != list(self._unmatched):
                self._unmatched = dict.fromkeys(s for s in sites if isinstance(s, str))
                self.update_badge()

    # Badge and status

    def rate_limit_status(self) -> RateLimitStatus:
        return self._rate_limiter.status()

    def update_badge(self) -> BadgeView:
        throttled = not self._rate_limiter.status().allowed
        return self._badge.update(throttled, len(self._unmatched))

    @property
    def badge(self) -> Optional[BadgeView]:
        return self._badge.last

    def status(self) -> dict[str, Any]:
        """Snapshot of the engine state for display."""
        rate_status = self._rate_limiter.status()
        last_reload = self._cache.last_full_reload_at
        return {
            "domains": len(self._matcher),
            "unmatched": len(self._unmatched),
            "full_monitoring": self._full_monitoring,
            "rate_limited": not rate_status.allowed,
            "rate_limit_wait_seconds": round(rate_status.wait_seconds),
            "last_full_reload_at": last_reload or None,
            "cache_age_seconds": round(self._clock() - last_reload) if last_reload else None,
            "last_record_count": self._cache.last_record_count,
        }

    # Logging helpers

    def _log_debug(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.debug(COMPONENT, message, data)

    def _log_info(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.info(COMPONENT, message, data)

    def _log_warn(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.warn(COMPONENT, message, data)

    def _log_error(self, message: str, error: Exception) -> None:
        if self._logger:
            self._logger.log_error(COMPONENT, message, error)


def create_engine(
    config: SystemConfig,
    store: Optional[KeyValueStore] = None,
    badge: Optional[BadgeSink] = None,
    logger: Optional[AuditLogger] = None,
    client: Optional[httpx.AsyncClient] = None,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> SyncEngine:
    """Wire a SyncEngine with the record source selected by the config."""
    if store is None:
        store = JsonFileStore(
            config.persistence.state_file_path,
            config.persistence.hmac_secret,
        )
    rate_limiter = RateLimitTracker(config.rate_limit, store=store, clock=clock, logger=logger)
    retry_manager = RetryManager(config.retry, sleep=sleep, logger=logger)
    source = create_record_source(
        config.source,
        rate_limiter,
        retry_manager,
        client=client,
        logger=logger,
    )
    return SyncEngine(
        source=source,
        store=store,
        rate_limiter=rate_limiter,
        config=config,
        badge=badge,
        logger=logger,
        clock=clock,
    )
