"""
Navigation monitoring.

Feeds visited URLs into the engine. Committed main-frame navigations are
always checked; tab URL updates (single-page apps, history changes) and the
startup scan of already open tabs only count in full monitoring mode.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from .audit_logger import AuditLogger
from .engine import SyncEngine


COMPONENT = "NavigationMonitor"


@dataclass(frozen=True)
class NavigationEvent:
    """A committed navigation."""

    url: str
    is_main_frame: bool = True


@dataclass(frozen=True)
class TabUpdateEvent:
    """A tab's URL changed without a new navigation being committed."""

    url: Optional[str] = None


class NavigationMonitor:
    """Routes browser-style navigation events to ``SyncEngine.process_url``."""

    def __init__(self, engine: SyncEngine, logger: Optional[AuditLogger] = None) -> None:
        self._engine = engine
        self._logger = logger
        self._tab_updates_attached = engine.full_monitoring
        engine.add_monitoring_listener(self._on_monitoring_changed)

    @property
    def tab_updates_attached(self) -> bool:
        return self._tab_updates_attached

    def on_committed(self, event: NavigationEvent) -> Optional[bool]:
        if not event.is_main_frame:
            return None
        return self._check(event.url)

    def on_tab_updated(self, event: TabUpdateEvent) -> Optional[bool]:
        if not self._engine.full_monitoring or not event.url:
            return None
        return self._check(event.url)

    def scan_open_tabs(self, urls: Iterable[str]) -> int:
        """
        Check every open tab once (full monitoring mode only).

        Returns:
            Number of URLs that were checked
        """
        if not self._engine.full_monitoring:
            return 0

        checked = 0
        for url in urls:
            if self._check(url) is not None:
                checked += 1
        return checked

    def _check(self, url: str) -> Optional[bool]:
        try:
            return self._engine.process_url(url)
        except Exception as e:
            if self._logger:
                self._logger.log_error(COMPONENT, "Error while checking URL", e, request_url=url)
            return None

    def _on_monitoring_changed(self, enabled: bool) -> None:
        self._tab_updates_attached = enabled
        if self._logger:
            self._logger.info(
                COMPONENT,
                "Tab update listener attached" if enabled else "Tab update listener detached",
                {},
            )
