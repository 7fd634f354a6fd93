"""
Command-line interface for the Imperva WAF client.

Commands:
- sites: List the account's sites
- status: Show a site's status
- rules: List a site's custom rules
- traffic: Show recent visits and a stats summary for a site
- release-session: Release a blocked session
- self-test: Validate configuration and connectivity
- verify: Check that a saved response body parses as visits or stats
- config: Configuration management

Commands that act on a site prompt for one when --site is not given.
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Awaitable, Callable, Optional

from dotenv import load_dotenv

from . import __version__
from .audit_logger import AuditLogger
from .client import ImpervaClient, create_client
from .config import DEFAULT_HOST, AppConfig, ClientConfig, LoggingConfig
from .enums import ApiGeneration, LogLevel
from .exceptions import ConfigError, ImpervaError, ValidationError
from .models import StatsOptions, StatsSeries, VisitOptions
from .self_test import SelfTest, verify_dump


DEFAULT_CONFIG_PATH = Path.home() / ".imperva_waf" / "config.json"

DEFAULT_STATS = "visits_timeseries,hits_timeseries,bandwidth_timeseries"

ENV_HOST = "IMPERVA_HOST"
ENV_API_ID = "IMPERVA_API_ID"
ENV_API_KEY = "IMPERVA_API_KEY"
ENV_ACCOUNT_ID = "IMPERVA_ACCOUNT_ID"
ENV_RULES_API = "IMPERVA_RULES_API"


def _parse_generation(value: Optional[str]) -> ApiGeneration:
    if not value:
        return ApiGeneration.V3
    try:
        return ApiGeneration(value.lower())
    except ValueError:
        raise ConfigError(
            f"Unknown rules_api_generation: {value!r}",
            details={"allowed": [g.value for g in ApiGeneration]},
        ) from None


def _str_field(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)  # account ids are often written as numbers
    if not isinstance(value, str):
        raise ConfigError(f"Config field {key!r} must be a string")
    return value


def load_config_from_file(config_path: Path) -> Optional[AppConfig]:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        AppConfig, or None if the file does not exist

    Raises:
        ConfigError: If the file is not valid configuration
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigError(f"Error loading config {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Error loading config {config_path}: expected a JSON object")

    client = ClientConfig(
        host=_str_field(data, "host") or DEFAULT_HOST,
        api_id=_str_field(data, "api_id"),
        api_key=_str_field(data, "api_key"),
        account_id=_str_field(data, "account_id") or None,
        rules_api_generation=_parse_generation(data.get("rules_api_generation")),
    )
    return AppConfig(client=client, logging=_parse_logging(data.get("logging")))


def _parse_logging(data: object) -> LoggingConfig:
    """
    Read the ``logging`` section of a config file.

    Raises:
        ConfigError: If the section or one of its fields has the wrong type
            or an unknown value
    """
    if data is None:
        return LoggingConfig()
    if not isinstance(data, dict):
        raise ConfigError("Config field 'logging' must be an object")

    level = _str_field(data, "level") or "warn"
    if level.lower() not in {lvl.value for lvl in LogLevel}:
        raise ConfigError(
            f"Unknown log level: {level!r}",
            details={"allowed": [lvl.value for lvl in LogLevel]},
        )

    output_format = _str_field(data, "output_format") or "text"
    if output_format not in ("json", "text", "both"):
        raise ConfigError(
            f"Unknown log output_format: {output_format!r}",
            details={"allowed": ["json", "text", "both"]},
        )

    audit_mode = data.get("audit_mode", False)
    if not isinstance(audit_mode, bool):
        raise ConfigError("Config field 'audit_mode' must be a boolean")

    return LoggingConfig(
        level=level,
        audit_mode=audit_mode,
        audit_signing_key=_str_field(data, "audit_signing_key") or None,
        output_format=output_format,
    )


def load_config_from_env(env_file: Optional[Path] = None) -> Optional[AppConfig]:
    """
    Load configuration from the environment, reading a .env file first.

    Returns:
        AppConfig, or None if IMPERVA_API_ID or IMPERVA_API_KEY is unset
    """
    load_dotenv(dotenv_path=env_file)

    api_id = os.getenv(ENV_API_ID, "").strip()
    api_key = os.getenv(ENV_API_KEY, "").strip()
    if not api_id or not api_key:
        return None

    return AppConfig(client=ClientConfig(
        host=os.getenv(ENV_HOST, "").strip() or DEFAULT_HOST,
        api_id=api_id,
        api_key=api_key,
        account_id=os.getenv(ENV_ACCOUNT_ID, "").strip() or None,
        rules_api_generation=_parse_generation(os.getenv(ENV_RULES_API, "").strip()),
    ))


def save_config_to_file(config: AppConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "host": config.client.host,
            "api_id": config.client.api_id,
            "api_key": config.client.api_key,
            "account_id": config.client.account_id,
            "rules_api_generation": config.client.rules_api_generation.value,
            "logging": {
                "level": config.logging.level,
                "audit_mode": config.logging.audit_mode,
                "audit_signing_key": config.logging.audit_signing_key,
                "output_format": config.logging.output_format,
            },
        }

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return True

    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False


def resolve_config(config_path: Optional[str]) -> AppConfig:
    """
    Find configuration: an explicit file, else the default file, else the environment.

    Raises:
        ConfigError: If no configuration can be found
    """
    if config_path:
        config = load_config_from_file(Path(config_path))
        if config is None:
            raise ConfigError(f"Config file not found: {config_path}")
        return config

    config = load_config_from_file(DEFAULT_CONFIG_PATH)
    if config is None:
        config = load_config_from_env()
    if config is None:
        raise ConfigError(
            f"No configuration found. Use --config, create {DEFAULT_CONFIG_PATH}, "
            f"or set {ENV_API_ID} and {ENV_API_KEY}."
        )
    return config


def create_logger(config: AppConfig, verbose: bool = False) -> AuditLogger:
    logging_config = config.logging
    if verbose:
        logging_config = LoggingConfig(
            level="debug",
            audit_mode=logging_config.audit_mode,
            audit_signing_key=logging_config.audit_signing_key,
            output_format=logging_config.output_format,
        )
    return AuditLogger.from_config(logging_config)


async def select_site(
    client: ImpervaClient,
    input_func: Callable[[str], str] = input,
) -> int:
    """
    List the account's sites and prompt for a site id.

    Raises:
        ValidationError: If there are no sites or the input is not a number
    """
    print("Fetching available sites...")
    sites = await client.list_sites()
    if not sites:
        raise ValidationError("No sites found for this account")

    print("Available Sites:")
    for site in sites:
        status = site.status
        if site.is_active:
            status += " (Active)"
        print(f" - ID: {site.site_id} | Domain: {site.domain} | Status: {status}")

    answer = input_func("\nEnter Site ID: ").strip()
    try:
        site_id = int(answer)
    except ValueError:
        raise ValidationError(f"Invalid site ID: {answer!r}") from None

    if not any(site.site_id == site_id for site in sites):
        print(f"Warning: Site ID {site_id} not found in the list. Proceeding anyway...")
    return site_id


async def _resolve_site(client: ImpervaClient, args: argparse.Namespace) -> int:
    if args.site is not None:
        return args.site
    return await select_site(client)


async def run_sites(client: ImpervaClient, args: argparse.Namespace) -> int:
    sites = await client.list_sites()
    if not sites:
        print("No sites found for this account.")
        return 0

    print(f"Found {len(sites)} sites:")
    for site in sites:
        status = site.status
        if site.is_active:
            status += " (Active)"
        print(f" - ID: {site.site_id} | Domain: {site.domain} | Status: {status}")
        if site.waf_rules:
            print(f"   WAF Rules Configured: {len(site.waf_rules)}")
            for rule in site.waf_rules:
                print(f"    * {rule.name} ({rule.id}): {rule.action}")
    return 0


async def run_status(client: ImpervaClient, args: argparse.Namespace) -> int:
    site_id = await _resolve_site(client, args)
    print(f"\nChecking status for site {site_id}...")
    site = await client.get_site_status(site_id, args.tests)
    print(f"Site Status: {site.status} (Active: {site.is_active})")
    if site.ips:
        print(f" - IPs: {', '.join(site.ips)}")
    if site.dns:
        print(f" - DNS Records: {len(site.dns)}")
    return 0


async def run_rules(client: ImpervaClient, args: argparse.Namespace) -> int:
    site_id = await _resolve_site(client, args)
    generation = client.rules_api_generation.value
    print(f"\nListing rules for site {site_id} ({generation})...")
    rules = await client.list_rules(site_id)
    print(f"Found {len(rules)} rules:")
    for rule in rules:
        print(f" - [{rule.rule_id}] {rule.name} (Action: {rule.action})")
    return 0


def _print_series(title: str, series: tuple[StatsSeries, ...]) -> None:
    if not series:
        return
    print(f"\n--- {title} ---")
    for item in series:
        print(f"Series: {item.name} ({item.id}) - {len(item.data)} points")
        if item.latest is not None:
            print(f"  Latest: TS={item.latest.timestamp}, Value={item.latest.value:.2f}")


async def run_traffic(client: ImpervaClient, args: argparse.Namespace) -> int:
    site_id = await _resolve_site(client, args)

    print(f"\nFetching visits ({args.time_range})...")
    visits = await client.get_visits(site_id, VisitOptions(
        time_range=args.time_range,
        page_size=args.page_size,
        security_events=args.security,
    ))
    print(f"Found {len(visits)} visits:")
    for visit in visits:
        print(f" - IP: {', '.join(visit.client_ips)}, Country: {', '.join(visit.countries)}")

    print(f"\nFetching stats ({args.time_range})...")
    stats = await client.get_stats(site_id, StatsOptions(
        time_range=args.time_range,
        stats=args.stats,
    ))
    print(f"Successfully fetched stats (Res: {stats.result.res})")
    _print_series("Visits Timeseries", stats.visits_timeseries)
    _print_series("Hits Timeseries", stats.hits_timeseries)
    _print_series("Bandwidth Timeseries", stats.bandwidth_timeseries)
    _print_series("Threats", stats.threats)
    _print_series("Security Rules", stats.incap_rules)
    return 0


async def run_release_session(client: ImpervaClient, args: argparse.Namespace) -> int:
    result = await client.release_session(args.site, args.session_id)
    print(f"Session {args.session_id} released: {result.res_message or 'OK'}")
    return 0


def _run_with_client(
    args: argparse.Namespace,
    command: Callable[[ImpervaClient, argparse.Namespace], Awaitable[int]],
) -> int:
    try:
        config = resolve_config(args.config)
        logger = create_logger(config, args.verbose)
    except (ConfigError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    async def run() -> int:
        async with create_client(config.client, logger) as client:
            return await command(client, args)

    try:
        return asyncio.run(run())
    except ImpervaError as e:
        print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
        return 1


def cmd_sites(args: argparse.Namespace) -> int:
    """Handle the 'sites' command."""
    return _run_with_client(args, run_sites)


def cmd_status(args: argparse.Namespace) -> int:
    """Handle the 'status' command."""
    return _run_with_client(args, run_status)


def cmd_rules(args: argparse.Namespace) -> int:
    """Handle the 'rules' command."""
    return _run_with_client(args, run_rules)


def cmd_traffic(args: argparse.Namespace) -> int:
    """Handle the 'traffic' command."""
    return _run_with_client(args, run_traffic)


def cmd_release_session(args: argparse.Namespace) -> int:
    """Handle the 'release-session' command."""
    return _run_with_client(args, run_release_session)


def cmd_self_test(args: argparse.Namespace) -> int:
    """Handle the 'self-test' command."""
    try:
        config = resolve_config(args.config)
        logger = create_logger(config, args.verbose)
    except (ConfigError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    self_test = SelfTest(config.client, logger)
    result = asyncio.run(self_test.run())
    self_test.print_results(result)
    return 0 if result.success else 1


def cmd_verify(args: argparse.Namespace) -> int:
    """Handle the 'verify' command."""
    print(f"Verifying parsing from file: {args.file}")
    result = verify_dump(Path(args.file))
    if result.kind == "visits":
        print(f"Successfully parsed {result.visits} visits from {args.file}")
        return 0
    if result.kind == "stats":
        print(f"Successfully parsed stats from {args.file}")
        for name, count in result.series.items():
            print(f"Found {count} {name} series")
        return 0

    print(f"Could not parse {args.file} as visits or stats: {result.error}", file=sys.stderr)
    return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        try:
            config = load_config_from_file(config_path)
        except ConfigError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a configuration.")
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  Host: {config.client.base_url}")
        print(f"  Account id: {config.client.account_id or '(default)'}")
        print(f"  Rules API: {config.client.rules_api_generation.value}")
        print(f"  Log level: {config.logging.level}")
        print(f"  Audit mode: {config.logging.audit_mode}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        env_config = load_config_from_env()
        config = env_config or AppConfig(client=ClientConfig(api_id="", api_key=""))
        if save_config_to_file(config, config_path):
            print(f"Configuration created at: {config_path}")
            if env_config is None:
                print("Fill in api_id and api_key before use.")
            return 0
        return 1

    elif args.action == "validate":
        try:
            config = load_config_from_file(config_path)
        except ConfigError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        if config is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
            return 1

        validation = SelfTest(config.client).validate_config()
        for warning in validation.warnings:
            print(f"Warning: {warning}")
        if not validation.valid:
            for error in validation.errors:
                print(f"Error: {error}", file=sys.stderr)
            return 1

        print(f"Configuration at {config_path} is valid.")
        return 0

    return 1


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH}, then environment)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log requests and decoding at debug level",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="imperva-waf",
        description="Imperva Cloud WAF API client",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'sites' command
    sites_parser = subparsers.add_parser("sites", help="List the account's sites")
    _add_common_arguments(sites_parser)
    sites_parser.set_defaults(func=cmd_sites)

    # 'status' command
    status_parser = subparsers.add_parser("status", help="Show a site's status")
    _add_common_arguments(status_parser)
    status_parser.add_argument("--site", "-s", type=int, help="Site ID (prompted if omitted)")
    status_parser.add_argument(
        "--tests",
        help="Comma-separated tests to run first: domain_validation, services, dns",
    )
    status_parser.set_defaults(func=cmd_status)

    # 'rules' command
    rules_parser = subparsers.add_parser("rules", help="List a site's custom rules")
    _add_common_arguments(rules_parser)
    rules_parser.add_argument("--site", "-s", type=int, help="Site ID (prompted if omitted)")
    rules_parser.set_defaults(func=cmd_rules)

    # 'traffic' command
    traffic_parser = subparsers.add_parser("traffic", help="Show visits and stats for a site")
    _add_common_arguments(traffic_parser)
    traffic_parser.add_argument("--site", "-s", type=int, help="Site ID (prompted if omitted)")
    traffic_parser.add_argument(
        "--time-range", "-t",
        default="last_7_days",
        help="Time range, e.g. last_hour, today, last_7_days (default: last_7_days)",
    )
    traffic_parser.add_argument(
        "--page-size",
        type=int,
        default=5,
        help="Number of visits to fetch (default: 5)",
    )
    traffic_parser.add_argument(
        "--security",
        choices=["all", "blocked"],
        help="Only visits with security events",
    )
    traffic_parser.add_argument(
        "--stats",
        default=DEFAULT_STATS,
        help=f"Comma-separated stats categories (default: {DEFAULT_STATS})",
    )
    traffic_parser.set_defaults(func=cmd_traffic)

    # 'release-session' command
    release_parser = subparsers.add_parser("release-session", help="Release a blocked session")
    _add_common_arguments(release_parser)
    release_parser.add_argument("--site", "-s", type=int, required=True, help="Site ID")
    release_parser.add_argument("session_id", help="Session ID to release")
    release_parser.set_defaults(func=cmd_release_session)

    # 'self-test' command
    self_test_parser = subparsers.add_parser(
        "self-test",
        help="Validate configuration and check connectivity",
    )
    _add_common_arguments(self_test_parser)
    self_test_parser.set_defaults(func=cmd_self_test)

    # 'verify' command
    verify_parser = subparsers.add_parser(
        "verify",
        help="Check that a saved JSON response parses as visits or stats",
    )
    verify_parser.add_argument("file", help="Path to the saved response body")
    verify_parser.set_defaults(func=cmd_verify)

    # 'config' command
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate"],
        help="Configuration action",
    )
    config_parser.add_argument("--path", "-p", help="Path to configuration file")
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

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

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
