"""
Domain List Sync - keeps a local copy of a publicly maintained domain list.

This package fetches a crowd-sourced list of domains from remote issue
records, caches it with freshness rules, respects API rate limits and checks
visited hosts against it, remembering the hosts that are not listed.
"""

__version__ = "0.1.0"
__author__ = "Domain List Sync Team"

from domain_list_sync.exceptions import (
    DomainListSyncError,
    NetworkError,
    ProtocolError,
    RetryExhaustedError,
    ExtractionError,
    PersistenceError,
    TamperingError,
    ConfigurationError,
)
from domain_list_sync.enums import (
    AttemptOutcome,
    LogLevel,
    ReloadReason,
    SourceKind,
)
from domain_list_sync.config import (
    RemoteSourceConfig,
    RetryConfig,
    RateLimitConfig,
    RefreshConfig,
    PersistenceConfig,
    LoggingConfig,
    SystemConfig,
    load_config_from_env,
    load_config_from_file,
    save_config_to_file,
)
from domain_list_sync.models import (
    RemoteRecord,
    RemoteComment,
    CacheRecord,
    RateLimitState,
    RefreshOutcome,
)
from domain_list_sync.host_normalizer import (
    canonicalize_host,
    host_from_url,
    normalize_domain,
)
from domain_list_sync.text_extractor import (
    extract_all_hosts,
    extract_first_host,
)
from domain_list_sync.audit_logger import (
    AuditLogger,
    LogEntry,
)
from domain_list_sync.state_store import (
    KeyValueStore,
    MemoryStore,
    JsonFileStore,
)
from domain_list_sync.rate_limiter import (
    RateLimitTracker,
    RateLimitStatus,
)
from domain_list_sync.retry_manager import (
    AttemptResult,
    RetryManager,
    RetryResult,
)
from domain_list_sync.record_sources import (
    RecordSource,
    GitHubIssueSource,
    IssueTableSource,
    PlainTextListSource,
    create_record_source,
)
from domain_list_sync.domain_list_builder import (
    DomainListBuilder,
)
from domain_list_sync.cache_policy import (
    CacheRepository,
    RefreshPolicy,
    ReloadDecision,
)
from domain_list_sync.matcher import (
    DomainMatcher,
)
from domain_list_sync.badge import (
    BadgePresenter,
    BadgeSink,
    BadgeView,
    LoggingBadge,
    RecordingBadge,
)
from domain_list_sync.engine import (
    SyncEngine,
    create_engine,
)
from domain_list_sync.navigation import (
    NavigationEvent,
    NavigationMonitor,
    TabUpdateEvent,
)
from domain_list_sync.scheduler import (
    IntervalScheduler,
    ScheduledTask,
)
from domain_list_sync.i18n import (
    get_message,
    get_all_message_keys,
    has_translation,
    get_missing_translations,
    validate_translations,
    TRANSLATIONS,
    SUPPORTED_LANGUAGES,
    DEFAULT_LANGUAGE,
)
from domain_list_sync.cli import (
    main as cli_main,
    create_parser,
)

__all__ = [
    # Exceptions
    "DomainListSyncError",
    "NetworkError",
    "ProtocolError",
    "RetryExhaustedError",
    "ExtractionError",
    "PersistenceError",
    "TamperingError",
    "ConfigurationError",
    # Enums
    "AttemptOutcome",
    "LogLevel",
    "ReloadReason",
    "SourceKind",
    # Configuration
    "RemoteSourceConfig",
    "RetryConfig",
    "RateLimitConfig",
    "RefreshConfig",
    "PersistenceConfig",
    "LoggingConfig",
    "SystemConfig",
    "load_config_from_env",
    "load_config_from_file",
    "save_config_to_file",
    # Models
    "RemoteRecord",
    "RemoteComment",
    "CacheRecord",
    "RateLimitState",
    "RefreshOutcome",
    # Host handling
    "canonicalize_host",
    "host_from_url",
    "normalize_domain",
    "extract_all_hosts",
    "extract_first_host",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # State Store
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    # Rate Limiter
    "RateLimitTracker",
    "RateLimitStatus",
    # Retry Manager
    "AttemptResult",
    "RetryManager",
    "RetryResult",
    # Record Sources
    "RecordSource",
    "GitHubIssueSource",
    "IssueTableSource",
    "PlainTextListSource",
    "create_record_source",
    # Domain list
    "DomainListBuilder",
    "CacheRepository",
    "RefreshPolicy",
    "ReloadDecision",
    "DomainMatcher",
    # Badge
    "BadgePresenter",
    "BadgeSink",
    "BadgeView",
    "LoggingBadge",
    "RecordingBadge",
    # Engine
    "SyncEngine",
    "create_engine",
    "NavigationEvent",
    "NavigationMonitor",
    "TabUpdateEvent",
    # Scheduler
    "IntervalScheduler",
    "ScheduledTask",
    # I18n
    "get_message",
    "get_all_message_keys",
    "has_translation",
    "get_missing_translations",
    "validate_translations",
    "TRANSLATIONS",
    "SUPPORTED_LANGUAGES",
    "DEFAULT_LANGUAGE",
    # CLI
    "cli_main",
    "create_parser",
]
