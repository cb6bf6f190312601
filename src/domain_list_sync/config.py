"""
Configuration dataclasses for the domain list synchronization engine.

This module defines the configuration structures used throughout the system
(remote source, retry, rate limiting, refresh cadence, persistence and
logging) together with loaders for JSON files and `.env` environments.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .enums import LogLevel, SourceKind
from .exceptions import ConfigurationError


DEFAULT_REPOSITORY = "svemailproject/TheySoldMyEmail"
DEFAULT_API_BASE_URL = "https://api.github.com"
DEFAULT_USER_AGENT = "domain-list-sync/0.1 (+https://github.com/svemailproject/TheySoldMyEmail)"
DEFAULT_STATE_FILE = Path.home() / ".domain_list_sync" / "state.json"
DEFAULT_CONFIG_FILE = Path.home() / ".domain_list_sync" / "config.json"
DEFAULT_HMAC_SECRET = "default-secret-change-me"

SUPPORTED_OUTPUT_FORMATS = ("json", "text", "both")


@dataclass
class RemoteSourceConfig:
    """Where and how the remote list is fetched."""

    kind: SourceKind = SourceKind.ISSUES
    repository: str = DEFAULT_REPOSITORY
    api_base_url: str = DEFAULT_API_BASE_URL
    text_url: Optional[str] = None
    issue_number: Optional[int] = None
    page_size: int = 100
    max_pages: int = 20
    timeout_seconds: float = 10.0
    token: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def issues_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}/repos/{self.repository}/issues"


@dataclass
class RetryConfig:
    """Backoff behavior for transient failures."""

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0


@dataclass
class RateLimitConfig:
    """Throttling behavior when the API omits a reset time."""

    fallback_reset_seconds: float = 60.0


@dataclass
class RefreshConfig:
    """Cadence of periodic checks and full reloads."""

    check_interval_seconds: float = 15 * 60
    full_reload_max_age_seconds: float = 24 * 60 * 60


@dataclass
class PersistenceConfig:
    """Persistence and state storage configuration."""

    state_file_path: Path = DEFAULT_STATE_FILE
    hmac_secret: str = DEFAULT_HMAC_SECRET


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    source: RemoteSourceConfig = field(default_factory=RemoteSourceConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    refresh: RefreshConfig = field(default_factory=RefreshConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    language: str = "de"  # 'de' or 'en'


def validate_config(config: SystemConfig) -> None:
    """
    Check a configuration for values the engine cannot work with.

    Raises:
        ConfigurationError: On the first invalid value found
    """
    source = config.source
    if source.page_size < 1 or source.page_size > 100:
        raise ConfigurationError(
            code="invalid_page_size",
            message=f"page_size must be between 1 and 100, got {source.page_size}",
        )
    if source.max_pages < 1:
        raise ConfigurationError(
            code="invalid_max_pages",
            message=f"max_pages must be at least 1, got {source.max_pages}",
        )
    if source.kind == SourceKind.TEXT and not source.text_url:
        raise ConfigurationError(
            code="missing_text_url",
            message="text_url is required for the 'text' source",
        )
    if source.kind == SourceKind.ISSUE_TABLE and not source.issue_number:
        raise ConfigurationError(
            code="missing_issue_number",
            message="issue_number is required for the 'issue_table' source",
        )
    if "/" not in source.repository:
        raise ConfigurationError(
            code="invalid_repository",
            message=f"repository must look like 'owner/name', got {source.repository!r}",
        )
    if config.retry.max_attempts < 1:
        raise ConfigurationError(
            code="invalid_max_attempts",
            message=f"max_attempts must be at least 1, got {config.retry.max_attempts}",
        )
    if config.refresh.check_interval_seconds <= 0:
        raise ConfigurationError(
            code="invalid_interval",
            message="check_interval_seconds must be positive",
        )
    if config.logging.output_format not in SUPPORTED_OUTPUT_FORMATS:
        raise ConfigurationError(
            code="invalid_output_format",
            message=f"Unknown output format: {config.logging.output_format}",
        )
    if config.logging.level not in {level.value for level in LogLevel}:
        raise ConfigurationError(
            code="invalid_log_level",
            message=f"Unknown log level: {config.logging.level}",
        )
    if config.language not in ("de", "en"):
        raise ConfigurationError(
            code="invalid_language",
            message=f"Unsupported language: {config.language}",
        )


def config_from_dict(data: dict) -> SystemConfig:
    """Build a SystemConfig from its JSON representation."""
    try:
        source_data = data.get("source", {})
        source = RemoteSourceConfig(
            kind=SourceKind(source_data.get("kind", SourceKind.ISSUES.value)),
            repository=source_data.get("repository", DEFAULT_REPOSITORY),
            api_base_url=source_data.get("api_base_url", DEFAULT_API_BASE_URL),
            text_url=source_data.get("text_url"),
            issue_number=source_data.get("issue_number"),
            page_size=int(source_data.get("page_size", 100)),
            max_pages=int(source_data.get("max_pages", 20)),
            timeout_seconds=float(source_data.get("timeout_seconds", 10.0)),
            token=source_data.get("token"),
            user_agent=source_data.get("user_agent", DEFAULT_USER_AGENT),
        )

        retry_data = data.get("retry", {})
        retry = RetryConfig(
            max_attempts=int(retry_data.get("max_attempts", 3)),
            base_delay_seconds=float(retry_data.get("base_delay_seconds", 1.0)),
            max_delay_seconds=float(retry_data.get("max_delay_seconds", 30.0)),
        )

        rate_limit_data = data.get("rate_limit", {})
        rate_limit = RateLimitConfig(
            fallback_reset_seconds=float(rate_limit_data.get("fallback_reset_seconds", 60.0)),
        )

        refresh_data = data.get("refresh", {})
        refresh = RefreshConfig(
            check_interval_seconds=float(refresh_data.get("check_interval_seconds", 15 * 60)),
            full_reload_max_age_seconds=float(
                refresh_data.get("full_reload_max_age_seconds", 24 * 60 * 60)
            ),
        )

        persistence_data = data.get("persistence", {})
        state_file_path = persistence_data.get("state_file_path")
        persistence = PersistenceConfig(
            state_file_path=Path(state_file_path) if state_file_path else DEFAULT_STATE_FILE,
            hmac_secret=persistence_data.get("hmac_secret", DEFAULT_HMAC_SECRET),
        )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            output_format=logging_data.get("output_format", "text"),
        )
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigurationError(
            code="invalid_config",
            message=f"Invalid configuration value: {e}",
        ) from e

    config = SystemConfig(
        source=source,
        retry=retry,
        rate_limit=rate_limit,
        refresh=refresh,
        persistence=persistence,
        logging=logging_config,
        language=data.get("language", "de"),
    )
    validate_config(config)
    return config


def config_to_dict(config: SystemConfig) -> dict:
    """Serialize a SystemConfig to plain JSON-compatible data."""
    return {
        "source": {
            "kind": config.source.kind.value,
            "repository": config.source.repository,
            "api_base_url": config.source.api_base_url,
            "text_url": config.source.text_url,
            "issue_number": config.source.issue_number,
            "page_size": config.source.page_size,
            "max_pages": config.source.max_pages,
            "timeout_seconds": config.source.timeout_seconds,
            "token": config.source.token,
            "user_agent": config.source.user_agent,
        },
        "retry": {
            "max_attempts": config.retry.max_attempts,
            "base_delay_seconds": config.retry.base_delay_seconds,
            "max_delay_seconds": config.retry.max_delay_seconds,
        },
        "rate_limit": {
            "fallback_reset_seconds": config.rate_limit.fallback_reset_seconds,
        },
        "refresh": {
            "check_interval_seconds": config.refresh.check_interval_seconds,
            "full_reload_max_age_seconds": config.refresh.full_reload_max_age_seconds,
        },
        "persistence": {
            "state_file_path": str(config.persistence.state_file_path),
            "hmac_secret": config.persistence.hmac_secret,
        },
        "logging": {
            "level": config.logging.level,
            "output_format": config.logging.output_format,
        },
        "language": config.language,
    }


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if the file exists, None otherwise

    Raises:
        ConfigurationError: If the file is not valid JSON or holds invalid values
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            code="parse_error",
            message=f"Failed to parse config file: {e}",
            details={"config_path": str(config_path)},
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            code="parse_error",
            message="Config file must contain a JSON object",
            details={"config_path": str(config_path)},
        )
    return config_from_dict(data)


def save_config_to_file(config: SystemConfig, config_path: Path) -> None:
    """Write configuration to a JSON file, creating parent directories."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config_to_dict(config), f, indent=2, ensure_ascii=False)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(
            code="invalid_env",
            message=f"{name} must be a number, got {raw!r}",
        ) from e


def load_config_from_env(
    base: Optional[SystemConfig] = None,
    dotenv_path: Optional[Path] = None,
) -> SystemConfig:
    """
    Overlay settings from the environment (and an optional `.env` file).

    Recognized variables: GITHUB_TOKEN, DOMAIN_LIST_REPOSITORY,
    DOMAIN_LIST_STATE_FILE, DOMAIN_LIST_HMAC_SECRET, DOMAIN_LIST_LANGUAGE,
    DOMAIN_LIST_LOG_LEVEL, DOMAIN_LIST_CHECK_INTERVAL.
    """
    load_dotenv(dotenv_path=dotenv_path)
    config = base or SystemConfig()

    token = os.getenv("GITHUB_TOKEN", "").strip()
    if token:
        config.source.token = token

    repository = os.getenv("DOMAIN_LIST_REPOSITORY", "").strip()
    if repository:
        config.source.repository = repository

    state_file = os.getenv("DOMAIN_LIST_STATE_FILE", "").strip()
    if state_file:
        config.persistence.state_file_path = Path(state_file)

    secret = os.getenv("DOMAIN_LIST_HMAC_SECRET", "").strip()
    if secret:
        config.persistence.hmac_secret = secret

    language = os.getenv("DOMAIN_LIST_LANGUAGE", "").strip().lower()
    if language:
        config.language = language

    level = os.getenv("DOMAIN_LIST_LOG_LEVEL", "").strip().lower()
    if level:
        config.logging.level = level

    config.refresh.check_interval_seconds = _float_env(
        "DOMAIN_LIST_CHECK_INTERVAL", config.refresh.check_interval_seconds
    )

    validate_config(config)
    return config
