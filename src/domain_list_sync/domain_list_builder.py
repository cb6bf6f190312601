"""
Domain List Builder.

Turns the records of a record source into a complete domain set: the title
(authoritative when it is itself a URL), the body and, for records with
comments, every comment body are scanned for hosts.
"""

from typing import Optional

from .audit_logger import AuditLogger
from .exceptions import ExtractionError
from .host_normalizer import host_from_url, is_full_url
from .models import RemoteRecord
from .record_sources import RecordSource
from .text_extractor import extract_all_hosts


COMPONENT = "DomainListBuilder"


class DomainListBuilder:
    """Builds the known-domain set from remote records."""

    def __init__(self, source: RecordSource, logger: Optional[AuditLogger] = None) -> None:
        self._source = source
        self._logger = logger

    @staticmethod
    def hosts_from_title(title: str) -> list[str]:
        """A title that is a URL contributes only its host."""
        title = (title or "").strip()
        if not title:
            return []
        if is_full_url(title):
            host = host_from_url(title)
            return [host] if host else []
        return extract_all_hosts(title)

    async def hosts_from_record(self, record: RemoteRecord) -> set[str]:
        """
        Extract all hosts mentioned by one record and its comments.

        Raises:
            ExtractionError: If the record cannot be processed
        """
        try:
            hosts = set(self.hosts_from_title(record.title))
            hosts.update(extract_all_hosts(record.body))

            if record.number and record.comment_count > 0:
                comments = await self._source.fetch_record_comments(record.number)
                for comment in comments:
                    if comment.body:
                        hosts.update(extract_all_hosts(comment.body))
        except (TypeError, ValueError, AttributeError) as e:
            raise ExtractionError(
                code="record_extraction_failed",
                message=f"Could not extract domains from record #{record.number}: {e}",
                details={"record": record.number},
            ) from e
        return hosts

    async def build(self) -> frozenset[str]:
        """
        Fetch all records and return the union of their hosts.

        A failing record is logged and skipped. The result may be empty when
        the remote source is empty or fully rate limited.

        Raises:
            RetryExhaustedError: If the record fetch itself fails
        """
        domains: set[str] = set()
        records = await self._source.fetch_all_records()

        for record in records:
            try:
                domains.update(await self.hosts_from_record(record))
            except ExtractionError as e:
                if self._logger:
                    self._logger.warn(COMPONENT, e.message, e.details)

        if self._logger:
            self._logger.debug(
                COMPONENT,
                "Domains extracted",
                {"records": len(records), "domains": len(domains)},
            )
        return frozenset(domains)
