"""
Tests for routing navigation events into the engine.
"""

import asyncio
from io import StringIO

from hypothesis import given, settings
from hypothesis import strategies as st

from domain_list_sync.audit_logger import AuditLogger
from domain_list_sync.engine import SyncEngine
from domain_list_sync.enums import LogLevel
from domain_list_sync.navigation import NavigationEvent, NavigationMonitor, TabUpdateEvent
from domain_list_sync.rate_limiter import RateLimitTracker
from domain_list_sync.state_store import MemoryStore


class StaticSource:
    """Record source with nothing remote; the list comes from the cache."""

    async def fetch_all_records(self):
        return []

    async def fetch_record_comments(self, number):
        return []

    async def get_record_count(self):
        return None

    async def close(self):
        pass


def make_monitor(full_monitoring: bool = False, logger=None):
    store = MemoryStore({
        "cached_domains": ["listed.com"],
        "last_full_reload": 1.0,
        "last_record_count": 1,
        "full_monitoring": full_monitoring,
    })
    engine = SyncEngine(
        source=StaticSource(),
        store=store,
        rate_limiter=RateLimitTracker(store=store),
        logger=logger,
    )
    asyncio.run(engine.init(refresh=False))
    return engine, NavigationMonitor(engine, logger=logger)


class BrokenEngine:
    """Engine double whose host check always raises."""

    full_monitoring = True

    def add_monitoring_listener(self, listener):
        pass

    def process_url(self, url):
        raise RuntimeError("boom")


class TestCommittedNavigation:

    def test_main_frame_is_checked(self) -> None:
        engine, monitor = make_monitor()
        assert monitor.on_committed(NavigationEvent("https://www.listed.com/")) is True
        assert monitor.on_committed(NavigationEvent("https://other.org/")) is False
        assert engine.get_unmatched() == ["other.org"]

    @given(host=st.text(alphabet=st.sampled_from("abcdefghij"), min_size=2, max_size=8))
    @settings(max_examples=30, deadline=None)
    def test_subframes_are_ignored(self, host: str) -> None:
        engine, monitor = make_monitor()
        event = NavigationEvent(f"https://{host}.example/frame", is_main_frame=False)
        assert monitor.on_committed(event) is None
        assert engine.get_unmatched() == []


class TestFullMonitoring:

    def test_tab_updates_need_full_monitoring(self) -> None:
        engine, monitor = make_monitor(full_monitoring=False)
        assert not monitor.tab_updates_attached
        assert monitor.on_tab_updated(TabUpdateEvent("https://spa.example/")) is None
        assert engine.get_unmatched() == []

        engine.set_full_monitoring(True)
        assert monitor.tab_updates_attached
        assert monitor.on_tab_updated(TabUpdateEvent("https://spa.example/")) is False
        assert engine.get_unmatched() == ["spa.example"]

        engine.set_full_monitoring(False)
        assert not monitor.tab_updates_attached

    def test_tab_update_without_url(self) -> None:
        _, monitor = make_monitor(full_monitoring=True)
        assert monitor.on_tab_updated(TabUpdateEvent()) is None

    def test_scan_open_tabs(self) -> None:
        tabs = ["https://listed.com/", "about:blank", "https://new.example/", "https://new.example/x"]

        engine, monitor = make_monitor(full_monitoring=False)
        assert monitor.scan_open_tabs(tabs) == 0
        assert engine.get_unmatched() == []

        engine, monitor = make_monitor(full_monitoring=True)
        assert monitor.tab_updates_attached
        assert monitor.scan_open_tabs(tabs) == 3
        assert engine.get_unmatched() == ["new.example"]


class TestErrorContainment:

    def test_check_errors_are_logged(self) -> None:
        logger = AuditLogger(output_stream=StringIO(), level=LogLevel.DEBUG)
        monitor = NavigationMonitor(BrokenEngine(), logger=logger)

        assert monitor.on_committed(NavigationEvent("https://a.example/")) is None
        assert monitor.scan_open_tabs(["https://b.example/"]) == 0

        errors = [entry for entry in logger.entries if entry.level == LogLevel.ERROR]
        assert len(errors) == 2
        assert errors[0].data["request_url"] == "https://a.example/"
        assert errors[0].data["error_type"] == "RuntimeError"
