"""
Remote record sources for the domain list.

A record source yields ``RemoteRecord`` objects (issues, or lines of a flat
list) plus their comments, and offers a cheap count check used to detect
remote activity without a full fetch. All implementations share the same
request plumbing: a rate limit check before every request, throttling
detection on error responses, and bounded exponential backoff for transient
failures.

Implementations:
- GitHubIssueSource: all issues of a repository, paginated
- IssueTableSource: a single issue whose body holds the list
- PlainTextListSource: a flat text file, one entry per line
"""

from abc import abstractmethod
from typing import Any, Callable, Optional, Protocol, TypeVar, runtime_checkable
from urllib.parse import parse_qs, urlparse, urlsplit

import httpx

from .audit_logger import AuditLogger
from .config import RemoteSourceConfig
from .enums import SourceKind
from .exceptions import ConfigurationError, NetworkError, ProtocolError, RetryExhaustedError
from .models import RemoteComment, RemoteRecord
from .rate_limiter import RateLimitTracker
from .retry_manager import AttemptResult, RetryManager

T = TypeVar("T")

COMPONENT = "RecordFetcher"
GITHUB_ACCEPT = "application/vnd.github+json"


@runtime_checkable
class RecordSource(Protocol):
    """Capability interface shared by all list acquisition strategies."""

    @abstractmethod
    async def fetch_all_records(self) -> list[RemoteRecord]:
        """
        Fetch every record of the remote list.

        Raises:
            RetryExhaustedError: If transient failures outlast the backoff budget
        """
        ...

    @abstractmethod
    async def fetch_record_comments(self, number: int) -> list[RemoteComment]:
        """Fetch the comments of one record; failures yield an empty list."""
        ...

    @abstractmethod
    async def get_record_count(self) -> Optional[int]:
        """Cheap change check; None means unknown, never zero."""
        ...

    @abstractmethod
    async def close(self) -> None:
        ...


def last_page_number(response: httpx.Response) -> Optional[int]:
    """Page number of the ``rel="last"`` link, if the response has one."""
    last = response.links.get("last")
    if not last or not last.get("url"):
        return None
    pages = parse_qs(urlsplit(last["url"]).query).get("page")
    if not pages:
        return None
    try:
        return int(pages[0])
    except ValueError:
        return None


def has_next_page(response: httpx.Response) -> bool:
    return "next" in response.links


class HttpRecordSource:
    """
    Shared HTTP plumbing for record sources.

    The httpx client is created lazily unless one is injected; an injected
    client is owned by the caller and not closed here.
    """

    def __init__(
        self,
        config: RemoteSourceConfig,
        rate_limiter: RateLimitTracker,
        retry_manager: RetryManager,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._config = config
        self._rate_limiter = rate_limiter
        self._retry = retry_manager
        self._client = client
        self._owns_client = client is None
        self._logger = logger

    async def __aenter__(self) -> "HttpRecordSource":
        self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def config(self) -> RemoteSourceConfig:
        return self._config

    @staticmethod
    def _validate_endpoint_url(endpoint: str) -> None:
        """
        Require HTTPS for remote endpoints.

        Raises:
            ConfigurationError: If the endpoint does not use HTTPS
        """
        parsed = urlparse(endpoint)
        if parsed.scheme.lower() != "https":
            raise ConfigurationError(
                code="tls_required",
                message=f"Remote endpoint must use HTTPS: {endpoint}",
                details={"endpoint": endpoint, "scheme": parsed.scheme},
            )

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": GITHUB_ACCEPT,
            "User-Agent": self._config.user_agent,
        }
        if self._config.token:
            headers["Authorization"] = f"Bearer {self._config.token}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=True,
                timeout=httpx.Timeout(self._config.timeout_seconds),
                follow_redirects=True,
                headers=self._headers(),
            )
            self._owns_client = True
        return self._client

    async def _request(self, url: str, params: Optional[dict[str, Any]] = None) -> httpx.Response:
        """Perform one GET; transport failures propagate as httpx.TransportError."""
        client = self._get_client()
        return await client.get(url, params=params, headers=self._headers())

    async def _attempt_get(
        self,
        url: str,
        params: Optional[dict[str, Any]],
        parse: Callable[[httpx.Response], AttemptResult[T]],
        throttled_value: T,
    ) -> AttemptResult[T]:
        """
        One request attempt with the standard rate limit handling.

        While throttled, and when the response is recognized as throttling,
        the attempt "succeeds" with ``throttled_value`` so that no retry is
        scheduled.
        """
        if self._rate_limiter.is_rate_limited():
            self._log_debug("Rate limit active, skipping request", {"url": url})
            return AttemptResult.success(throttled_value)

        try:
            response = await self._request(url, params)
        except httpx.TransportError as e:
            return AttemptResult.retryable(self._network_error(url, e))

        if not response.is_success:
            if self._rate_limiter.handle_rate_limit(response):
                return AttemptResult.success(throttled_value)
            return AttemptResult.retryable(self._status_error(url, response))

        return parse(response)

    def _network_error(self, url: str, error: Exception) -> NetworkError:
        return NetworkError(
            code="network_error",
            message=f"Request failed: {error}",
            details={"url": url, "error_type": type(error).__name__},
        )

    def _status_error(self, url: str, response: httpx.Response) -> NetworkError:
        return NetworkError(
            code="http_error",
            message=f"Remote API error: {response.status_code}",
            details={"url": url, "status_code": response.status_code},
        )

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    def _log_debug(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.debug(COMPONENT, message, data)

    def _log_info(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.info(COMPONENT, message, data)

    def _log_warn(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.warn(COMPONENT, message, data)


class GitHubIssueSource(HttpRecordSource):
    """
    All issues (open and closed) of a GitHub repository.

    Pages are fetched one after another, at most ``max_pages`` of
    ``page_size`` issues, while the ``Link`` header advertises a next page.
    Pull requests are dropped.
    """

    def __init__(
        self,
        config: RemoteSourceConfig,
        rate_limiter: RateLimitTracker,
        retry_manager: RetryManager,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._validate_endpoint_url(config.api_base_url)
        super().__init__(config, rate_limiter, retry_manager, client, logger)

    @property
    def issues_url(self) -> str:
        return self._config.issues_url

    async def fetch_all_records(self) -> list[RemoteRecord]:
        result = await self._retry.run(self._fetch_pages_once, label="issue fetch")
        if not result.success:
            raise RetryExhaustedError(
                code="fetch_failed",
                message=f"Fetching issues failed after {result.attempts} attempts",
                details={
                    "attempts": result.attempts,
                    "last_error": str(result.last_error) if result.last_error else None,
                },
            )
        records = result.result or []
        self._log_debug("Issues loaded (open + closed)", {"count": len(records)})
        return records

    async def _fetch_pages_once(self) -> AttemptResult[list[RemoteRecord]]:
        """
        One complete pass over the pages, starting at page 1.

        Network failures on page 1 and HTTP errors on any page are retryable;
        a network failure on a later page keeps what was loaded so far.
        """
        records: list[RemoteRecord] = []
        page = 1

        while page <= self._config.max_pages:
            if self._rate_limiter.is_rate_limited():
                self._log_debug("Rate limit active, stopping issue fetch", {"page": page})
                break

            params = {"state": "all", "per_page": self._config.page_size, "page": page}
            try:
                response = await self._request(self.issues_url, params)
            except httpx.TransportError as e:
                error = self._network_error(self.issues_url, e)
                if page == 1:
                    return AttemptResult.retryable(error)
                self._log_warn(
                    "Network error while paging, keeping partial result",
                    {"page": page, "records": len(records), "error": str(e)},
                )
                break

            if not response.is_success:
                if self._rate_limiter.handle_rate_limit(response):
                    break
                return AttemptResult.retryable(self._status_error(self.issues_url, response))

            items = self._decode_page(response, page)
            if not items:
                break

            records.extend(self._filter_records(items))

            if not has_next_page(response):
                break
            page += 1

        return AttemptResult.success(records)

    def _decode_page(self, response: httpx.Response, page: int) -> list:
        """Decode a page of issues; a malformed body counts as an empty page."""
        try:
            data = response.json()
        except ValueError as e:
            error = ProtocolError(
                code="malformed_response",
                message=f"Page {page} is not valid JSON: {e}",
                details={"page": page},
            )
            self._log_warn(error.message, error.details)
            return []
        if not isinstance(data, list):
            self._log_warn("Page is not a list of issues", {"page": page})
            return []
        return data

    def _filter_records(self, items: list) -> list[RemoteRecord]:
        records = []
        for item in items:
            if not isinstance(item, dict) or item.get("pull_request"):
                continue
            try:
                records.append(RemoteRecord.from_api(item))
            except (TypeError, ValueError) as e:
                self._log_warn("Skipping malformed issue", {"error": str(e)})
        return records

    async def fetch_record_comments(self, number: int) -> list[RemoteComment]:
        url = f"{self.issues_url}/{number}/comments"
        params = {"per_page": self._config.page_size}

        def parse(response: httpx.Response) -> AttemptResult[list[RemoteComment]]:
            try:
                data = response.json()
            except ValueError:
                return AttemptResult.success([])
            if not isinstance(data, list):
                return AttemptResult.success([])
            return AttemptResult.success([
                RemoteComment(body=item.get("body") or "")
                for item in data
                if isinstance(item, dict)
            ])

        async def attempt() -> AttemptResult[list[RemoteComment]]:
            return await self._attempt_get(url, params, parse, [])

        result = await self._retry.run(attempt, label=f"comments of #{number}")
        if not result.success:
            self._log_warn(
                "Could not load comments",
                {"issue": number, "error": str(result.last_error)},
            )
            return []
        return result.result or []

    async def get_record_count(self) -> Optional[int]:
        params = {"state": "all", "per_page": 1}

        def parse(response: httpx.Response) -> AttemptResult[Optional[int]]:
            # One issue per page, so the last page number is the total
            total = last_page_number(response)
            if total is not None:
                return AttemptResult.success(total)
            try:
                data = response.json()
            except ValueError:
                return AttemptResult.success(None)
            return AttemptResult.success(len(data) if isinstance(data, list) else None)

        async def attempt() -> AttemptResult[Optional[int]]:
            return await self._attempt_get(self.issues_url, params, parse, None)

        result = await self._retry.run(attempt, label="issue count")
        if not result.success:
            self._log_warn("Issue count check failed", {"error": str(result.last_error)})
            return None
        return result.result


class IssueTableSource(GitHubIssueSource):
    """
    A single issue whose body (typically a Markdown table) lists the domains.

    Comments are loaded through the regular comment endpoint; the count
    check reports the issue's comment count.
    """

    def __init__(
        self,
        config: RemoteSourceConfig,
        rate_limiter: RateLimitTracker,
        retry_manager: RetryManager,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        if not config.issue_number:
            raise ConfigurationError(
                code="missing_issue_number",
                message="IssueTableSource needs an issue number",
            )
        super().__init__(config, rate_limiter, retry_manager, client, logger)

    @property
    def issue_url(self) -> str:
        return f"{self.issues_url}/{self._config.issue_number}"

    async def _fetch_issue(self) -> AttemptResult[Optional[dict]]:
        def parse(response: httpx.Response) -> AttemptResult[Optional[dict]]:
            try:
                data = response.json()
            except ValueError:
                return AttemptResult.success(None)
            return AttemptResult.success(data if isinstance(data, dict) else None)

        return await self._attempt_get(self.issue_url, None, parse, None)

    async def fetch_all_records(self) -> list[RemoteRecord]:
        result = await self._retry.run(self._fetch_issue, label="list issue")
        if not result.success:
            raise RetryExhaustedError(
                code="fetch_failed",
                message=f"Fetching issue #{self._config.issue_number} failed",
                details={"attempts": result.attempts},
            )
        data = result.result
        if not data or data.get("pull_request"):
            return []
        return self._filter_records([data])

    async def get_record_count(self) -> Optional[int]:
        result = await self._retry.run(self._fetch_issue, label="list issue count")
        if not result.success or not result.result:
            return None
        comments = result.result.get("comments")
        return comments if isinstance(comments, int) else None


class PlainTextListSource(HttpRecordSource):
    """
    A flat text file with one domain or URL per line.

    Blank lines and ``#`` comments are ignored; every remaining line becomes
    one record whose title is the line. Files carry no comments, and the
    count check is the number of entries (it has to download the file).
    """

    def __init__(
        self,
        config: RemoteSourceConfig,
        rate_limiter: RateLimitTracker,
        retry_manager: RetryManager,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        if not config.text_url:
            raise ConfigurationError(
                code="missing_text_url",
                message="PlainTextListSource needs a text_url",
            )
        self._validate_endpoint_url(config.text_url)
        super().__init__(config, rate_limiter, retry_manager, client, logger)

    @staticmethod
    def parse_lines(text: str) -> list[RemoteRecord]:
        records = []
        for number, line in enumerate(text.splitlines(), start=1):
            entry = line.strip()
            if not entry or entry.startswith("#"):
                continue
            records.append(RemoteRecord(number=number, title=entry))
        return records

    async def _fetch_once(self) -> AttemptResult[Optional[list[RemoteRecord]]]:
        def parse(response: httpx.Response) -> AttemptResult[Optional[list[RemoteRecord]]]:
            return AttemptResult.success(self.parse_lines(response.text))

        return await self._attempt_get(self._config.text_url, None, parse, None)

    async def fetch_all_records(self) -> list[RemoteRecord]:
        result = await self._retry.run(self._fetch_once, label="text list")
        if not result.success:
            raise RetryExhaustedError(
                code="fetch_failed",
                message="Fetching the text list failed",
                details={"attempts": result.attempts},
            )
        return result.result or []

    async def fetch_record_comments(self, number: int) -> list[RemoteComment]:
        return []

    async def get_record_count(self) -> Optional[int]:
        result = await self._retry.run(self._fetch_once, label="text list count")
        if not result.success or result.result is None:
            return None
        return len(result.result)


def create_record_source(
    config: RemoteSourceConfig,
    rate_limiter: RateLimitTracker,
    retry_manager: RetryManager,
    client: Optional[httpx.AsyncClient] = None,
    logger: Optional[AuditLogger] = None,
) -> HttpRecordSource:
    """Build the record source selected by ``config.kind``."""
    if config.kind == SourceKind.TEXT:
        cls = PlainTextListSource
    elif config.kind == SourceKind.ISSUE_TABLE:
        cls = IssueTableSource
    else:
        cls = GitHubIssueSource
    return cls(config, rate_limiter, retry_manager, client=client, logger=logger)
