"""
Command-line interface for the domain list synchronization engine.

Commands:
- refresh: Run one refresh cycle
- check: Classify hosts or URLs against the domain list
- unmatched: Show, clear or copy the unlisted hosts seen so far
- monitoring: Toggle full monitoring mode
- watch: Periodic refresh plus URLs read from stdin as navigations
- status: Badge, rate limit and cache state
- config: Configuration management
"""

import argparse
import asyncio
import sys
import threading
from pathlib import Path
from typing import Awaitable, Callable, Optional, TextIO

from . import __version__
from .audit_logger import AuditLogger, create_logger
from .badge import LoggingBadge
from .config import (
    DEFAULT_CONFIG_FILE,
    SystemConfig,
    config_to_dict,
    load_config_from_env,
    load_config_from_file,
    save_config_to_file,
    validate_config,
)
from .engine import SyncEngine, create_engine
from .enums import ReloadReason
from .exceptions import ConfigurationError
from .i18n import SUPPORTED_LANGUAGES, get_message
from .models import RefreshOutcome
from .navigation import NavigationEvent, NavigationMonitor
from .scheduler import IntervalScheduler


EngineCommand = Callable[[SyncEngine, AuditLogger], Awaitable[int]]


def load_cli_config(
    config_path: Optional[str],
    language: Optional[str] = None,
) -> SystemConfig:
    """
    Resolve the effective configuration.

    The JSON file (default location unless given) is overlaid with the
    environment; an explicit ``--language`` wins over both.

    Raises:
        ConfigurationError: If an explicitly given file is missing or any
            source holds invalid values
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_FILE
    config = load_config_from_file(path)
    if config is None and config_path:
        raise ConfigurationError(
            code="config_not_found",
            message=f"Config file not found: {path}",
            details={"config_path": str(path)},
        )

    config = load_config_from_env(base=config)
    if language:
        config.language = language
    return config


def run_with_engine(config: SystemConfig, verbose: bool, command: EngineCommand) -> int:
    """Create an engine for one CLI command and tear it down afterwards."""

    async def runner() -> int:
        logger = create_logger(
            level="debug" if verbose else config.logging.level,
            output_format=config.logging.output_format,
        )
        engine = create_engine(config, badge=LoggingBadge(logger), logger=logger)
        try:
            return await command(engine, logger)
        finally:
            await engine.teardown()

    return asyncio.run(runner())


def print_outcome(outcome: RefreshOutcome, language: str) -> None:
    if outcome.skipped:
        print(get_message("refresh.skipped", language))
    elif outcome.reloaded:
        print(get_message(
            "refresh.reloaded",
            language,
            domains=outcome.domain_count,
            records=outcome.record_count if outcome.record_count is not None else "?",
        ))
    elif outcome.reason in (ReloadReason.UP_TO_DATE, ReloadReason.COUNT_UNKNOWN):
        print(get_message("refresh.up_to_date", language, domains=outcome.domain_count))
    else:
        print(get_message("refresh.kept", language, domains=outcome.domain_count))

    if outcome.reason is not None:
        print("  " + get_message("refresh.reason", language, reason=outcome.reason.value))
    for error in outcome.errors:
        print(get_message("refresh.failed", language, error=error), file=sys.stderr)


def cmd_refresh(args: argparse.Namespace, config: SystemConfig) -> int:
    """Handle the 'refresh' command."""

    async def command(engine: SyncEngine, logger: AuditLogger) -> int:
        await engine.init(refresh=False)
        outcome = await engine.refresh(force=args.force)
        print_outcome(outcome, config.language)
        return 1 if outcome.errors else 0

    return run_with_engine(config, args.verbose, command)


def cmd_check(args: argparse.Namespace, config: SystemConfig) -> int:
    """Handle the 'check' command. Exit code 0 only when every value is listed."""

    async def command(engine: SyncEngine, logger: AuditLogger) -> int:
        await engine.init(refresh=not args.no_refresh)
        all_listed = True
        for value in args.values:
            host = value.strip()
            url = host if "://" in host else "http://" + host
            listed = engine.process_url(url) if host else None

            if listed is None:
                print(get_message("check.no_host", config.language, value=value))
                all_listed = False
            elif listed:
                print(get_message("check.listed", config.language, host=host))
            else:
                print(get_message("check.unlisted", config.language, host=host))
                all_listed = False
        return 0 if all_listed else 1

    return run_with_engine(config, args.verbose, command)


def cmd_unmatched(args: argparse.Namespace, config: SystemConfig) -> int:
    """Handle the 'unmatched' command."""

    async def command(engine: SyncEngine, logger: AuditLogger) -> int:
        await engine.init(refresh=False)
        if args.clear:
            engine.clear_unmatched()
            print(get_message("unmatched.cleared", config.language))
            return 0

        sites = engine.get_unmatched()
        if args.copy:
            if sites:
                print("\n".join(sites))
            return 0

        if not sites:
            print(get_message("unmatched.empty", config.language))
            return 0
        print(get_message("unmatched.header", config.language, count=len(sites)))
        for site in sites:
            print(f"  {site}")
        return 0

    return run_with_engine(config, args.verbose, command)


def cmd_monitoring(args: argparse.Namespace, config: SystemConfig) -> int:
    """Handle the 'monitoring' command."""

    async def command(engine: SyncEngine, logger: AuditLogger) -> int:
        await engine.init(refresh=False)
        if args.action == "on":
            engine.set_full_monitoring(True)
        elif args.action == "off":
            engine.set_full_monitoring(False)

        key = "monitoring.enabled" if engine.full_monitoring else "monitoring.disabled"
        print(get_message(key, config.language))
        return 0

    return run_with_engine(config, args.verbose, command)


def start_line_reader(
    stream: TextIO,
    loop: asyncio.AbstractEventLoop,
) -> "asyncio.Queue[Optional[str]]":
    """
    Read lines from a blocking stream on a daemon thread.

    Lines are handed to the event loop through a queue; ``None`` marks EOF.
    The thread never keeps the process alive, so an interrupted ``watch``
    exits without waiting for the next input line.
    """
    lines: asyncio.Queue[Optional[str]] = asyncio.Queue()

    def pump() -> None:
        try:
            for line in iter(stream.readline, ""):
                loop.call_soon_threadsafe(lines.put_nowait, line)
            loop.call_soon_threadsafe(lines.put_nowait, None)
        except RuntimeError:
            # Event loop already closed
            return

    threading.Thread(target=pump, name="stdin-reader", daemon=True).start()
    return lines


async def read_navigations(
    monitor: NavigationMonitor,
    stop_event: asyncio.Event,
    language: str,
    stream: Optional[TextIO] = None,
) -> None:
    """Treat each input line as a committed main-frame navigation until EOF."""
    lines = start_line_reader(stream or sys.stdin, asyncio.get_running_loop())
    while not stop_event.is_set():
        line = await lines.get()
        if line is None:
            break
        url = line.strip()
        if not url:
            continue
        listed = monitor.on_committed(NavigationEvent(url=url))
        if listed is True:
            print(get_message("check.listed", language, host=url), flush=True)
        elif listed is False:
            print(get_message("check.unlisted", language, host=url), flush=True)
    stop_event.set()


def cmd_watch(args: argparse.Namespace, config: SystemConfig) -> int:
    """Handle the 'watch' command."""

    async def command(engine: SyncEngine, logger: AuditLogger) -> int:
        await engine.init(refresh=False)
        monitor = NavigationMonitor(engine, logger=logger)
        monitor.scan_open_tabs(args.tabs or [])

        async def refresh_task() -> None:
            await engine.refresh(False)

        scheduler = IntervalScheduler(logger=logger)
        interval = config.refresh.check_interval_seconds
        scheduler.schedule("refresh", interval, refresh_task, run_immediately=True)

        print(get_message("watch.started", config.language, interval=round(interval)), flush=True)
        stop_event = asyncio.Event()
        await asyncio.gather(
            scheduler.run(stop_event),
            read_navigations(monitor, stop_event, config.language),
        )
        print(get_message("watch.stopped", config.language))
        return 0

    try:
        return run_with_engine(config, args.verbose, command)
    except KeyboardInterrupt:
        return 130


def cmd_status(args: argparse.Namespace, config: SystemConfig) -> int:
    """Handle the 'status' command."""

    async def command(engine: SyncEngine, logger: AuditLogger) -> int:
        await engine.init(refresh=False)
        language = config.language
        status = engine.status()

        print(get_message("status.domains", language, count=status["domains"]))
        print(get_message("status.unmatched", language, count=status["unmatched"]))
        state = get_message("status.on" if status["full_monitoring"] else "status.off", language)
        print(get_message("status.monitoring", language, state=state))

        if status["rate_limited"]:
            print(get_message(
                "status.rate_limited", language, seconds=status["rate_limit_wait_seconds"],
            ))
        else:
            print(get_message("status.rate_limit_ok", language))

        if status["cache_age_seconds"] is None:
            print(get_message("status.cache_never", language))
        else:
            print(get_message(
                "status.cache_age",
                language,
                minutes=status["cache_age_seconds"] // 60,
                records=status["last_record_count"],
            ))

        badge = engine.badge
        if badge is not None:
            print(get_message("status.badge", language, text=badge.text, color=badge.color))
        return 0

    return run_with_engine(config, args.verbose, command)


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.config) if args.config else DEFAULT_CONFIG_FILE
    language = args.language

    if args.action == "show":
        try:
            config = load_config_from_file(config_path)
        except ConfigurationError as e:
            print(get_message("config.invalid", language, error=e.message), file=sys.stderr)
            return 2
        if config is None:
            print(get_message("config.not_found", language, path=config_path))
            print(get_message("config.init_hint", language))
            return 1

        language = language or config.language
        data = config_to_dict(config)
        if data["source"].get("token"):
            data["source"]["token"] = AuditLogger.MASK_VALUE
        data["persistence"]["hmac_secret"] = AuditLogger.MASK_VALUE

        print(get_message("config.from", language, path=config_path))
        for section, values in data.items():
            if isinstance(values, dict):
                print(f"  {section}:")
                for key, value in values.items():
                    print(f"    {key}: {value}")
            else:
                print(f"  {section}: {values}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(get_message("config.exists", language, path=config_path))
            print(get_message("config.force_hint", language))
            return 1

        config = SystemConfig(language=language or "de")
        try:
            save_config_to_file(config, config_path)
        except OSError as e:
            print(get_message("config.save_failed", language, error=e), file=sys.stderr)
            return 1
        print(get_message("config.created", language, path=config_path))
        return 0

    elif args.action == "validate":
        try:
            config = load_config_from_file(config_path)
            if config is None:
                print(get_message("config.not_found", language, path=config_path), file=sys.stderr)
                return 1
            validate_config(config)
        except ConfigurationError as e:
            print(get_message("config.invalid", language, error=e.message), file=sys.stderr)
            return 2

        print(get_message("config.valid", language or config.language, path=config_path))
        return 0

    return 1


ENGINE_COMMANDS = {
    "refresh": cmd_refresh,
    "check": cmd_check,
    "unmatched": cmd_unmatched,
    "monitoring": cmd_monitoring,
    "watch": cmd_watch,
    "status": cmd_status,
}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    common.add_argument(
        "--language", "-l",
        choices=sorted(SUPPORTED_LANGUAGES),
        default=None,
        help="Output language (default: from configuration, else de)",
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )

    parser = argparse.ArgumentParser(
        prog="domain-list-sync",
        description="Check visited domains against a publicly maintained domain list",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    refresh_parser = subparsers.add_parser(
        "refresh",
        parents=[common],
        help="Run one refresh cycle",
    )
    refresh_parser.add_argument(
        "--force",
        action="store_true",
        help="Reload the full list even if the cache is current or throttled",
    )

    check_parser = subparsers.add_parser(
        "check",
        parents=[common],
        help="Check hosts or URLs against the domain list",
    )
    check_parser.add_argument(
        "values",
        nargs="+",
        metavar="URL_OR_HOST",
        help="Hosts (example.com) or URLs (https://mail.example.com/login)",
    )
    check_parser.add_argument(
        "--no-refresh",
        action="store_true",
        help="Use the cached list without contacting the remote source",
    )

    unmatched_parser = subparsers.add_parser(
        "unmatched",
        parents=[common],
        help="Show the unlisted hosts seen so far",
    )
    unmatched_group = unmatched_parser.add_mutually_exclusive_group()
    unmatched_group.add_argument(
        "--clear",
        action="store_true",
        help="Clear the list",
    )
    unmatched_group.add_argument(
        "--copy",
        action="store_true",
        help="Print one host per line without decoration",
    )

    monitoring_parser = subparsers.add_parser(
        "monitoring",
        parents=[common],
        help="Show or toggle full monitoring mode",
    )
    monitoring_parser.add_argument(
        "action",
        choices=["on", "off", "show"],
        nargs="?",
        default="show",
        help="Monitoring action",
    )

    watch_parser = subparsers.add_parser(
        "watch",
        parents=[common],
        help="Refresh periodically and check URLs read from stdin",
    )
    watch_parser.add_argument(
        "--tab",
        dest="tabs",
        action="append",
        metavar="URL",
        help="URL of an already open tab (checked once in full monitoring mode)",
    )

    subparsers.add_parser(
        "status",
        parents=[common],
        help="Show badge, rate limit and cache state",
    )

    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "config":
        return cmd_config(args)

    try:
        config = load_cli_config(args.config, args.language)
    except ConfigurationError as e:
        print(get_message("config.invalid", args.language, error=e.message), file=sys.stderr)
        return 2

    return ENGINE_COMMANDS[args.command](args, config)


if __name__ == "__main__":
    sys.exit(main())
