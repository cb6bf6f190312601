"""
Tests for building the domain set from remote records.
"""

import asyncio
from io import StringIO
from typing import Optional

from hypothesis import given, settings
from hypothesis import strategies as st

from domain_list_sync.audit_logger import AuditLogger
from domain_list_sync.domain_list_builder import DomainListBuilder
from domain_list_sync.enums import LogLevel
from domain_list_sync.models import RemoteComment, RemoteRecord


class FakeSource:
    """In-memory record source."""

    def __init__(self, records, comments: Optional[dict] = None, broken: frozenset = frozenset()) -> None:
        self.records = list(records)
        self.comments = comments or {}
        self.broken = broken
        self.comment_requests: list[int] = []

    async def fetch_all_records(self) -> list[RemoteRecord]:
        return list(self.records)

    async def fetch_record_comments(self, number: int) -> list[RemoteComment]:
        self.comment_requests.append(number)
        if number in self.broken:
            raise TypeError("comment payload is not iterable")
        return [RemoteComment(body) for body in self.comments.get(number, [])]

    async def get_record_count(self) -> Optional[int]:
        return len(self.records)

    async def close(self) -> None:
        pass


@st.composite
def host_strategy(draw) -> str:
    name = draw(
        st.text(alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz"), min_size=3, max_size=10)
        .filter(lambda value: value != "www")
    )
    tld = draw(st.sampled_from(["com", "net", "org", "biz"]))
    return f"{name}.{tld}"


class TestTitleHandling:

    def test_url_title_contributes_only_its_host(self) -> None:
        title = "https://www.Shop.example.com/newsletter?ref=other.com"
        assert DomainListBuilder.hosts_from_title(title) == ["shop.example.com"]

    def test_free_text_title_is_scanned(self) -> None:
        assert DomainListBuilder.hosts_from_title("Spam after signing up at shady.biz") == ["shady.biz"]

    def test_empty_title(self) -> None:
        assert DomainListBuilder.hosts_from_title("") == []
        assert DomainListBuilder.hosts_from_title("   ") == []


class TestBuildProperty:
    """The domain set is the union of hosts from titles, bodies and comments."""

    @given(
        title_hosts=st.lists(host_strategy(), min_size=1, max_size=5),
        body_hosts=st.lists(host_strategy(), max_size=5),
        comment_hosts=st.lists(host_strategy(), max_size=5),
    )
    @settings(max_examples=50, deadline=None)
    def test_union_of_all_sources(
        self,
        title_hosts: list[str],
        body_hosts: list[str],
        comment_hosts: list[str],
    ) -> None:
        records = [
            RemoteRecord(number=i + 1, title=f"https://{host}/", comment_count=0)
            for i, host in enumerate(title_hosts)
        ]
        records.append(RemoteRecord(
            number=100,
            title="Report",
            body="\n".join(f"- {host}" for host in body_hosts),
            comment_count=len(comment_hosts),
        ))
        source = FakeSource(records, comments={100: [f"seen at {h}" for h in comment_hosts]})

        domains = asyncio.run(DomainListBuilder(source).build())

        assert domains == frozenset(title_hosts) | frozenset(body_hosts) | frozenset(comment_hosts)

    def test_comments_only_fetched_when_present(self) -> None:
        records = [
            RemoteRecord(number=1, title="a.com", comment_count=0),
            RemoteRecord(number=2, title="b.com", comment_count=3),
        ]
        source = FakeSource(records, comments={2: ["c.com"]})
        domains = asyncio.run(DomainListBuilder(source).build())
        assert domains == {"a.com", "b.com", "c.com"}
        assert source.comment_requests == [2]

    def test_failing_record_is_skipped(self) -> None:
        stream = StringIO()
        logger = AuditLogger(output_stream=stream, level=LogLevel.DEBUG)
        records = [
            RemoteRecord(number=1, title="good.com"),
            RemoteRecord(number=2, title="bad.com", comment_count=1),
            RemoteRecord(number=3, title="fine.net"),
        ]
        source = FakeSource(records, broken=frozenset({2}))

        domains = asyncio.run(DomainListBuilder(source, logger=logger).build())

        assert domains == {"good.com", "fine.net"}
        assert any(entry.level == LogLevel.WARN for entry in logger.entries)

    def test_empty_source(self) -> None:
        assert asyncio.run(DomainListBuilder(FakeSource([])).build()) == frozenset()
