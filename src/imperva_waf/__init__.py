"""
Imperva WAF Client - typed async client for the Imperva Cloud WAF API.

This package wraps the sites, rules, sessions, visits and stats endpoints and
normalizes the vendor's inconsistent response shapes into immutable records.
"""

__version__ = "0.1.0"
__author__ = "Imperva WAF Client Team"

from imperva_waf.exceptions import (
    ImpervaError,
    TransportError,
    HTTPStatusError,
    DecodeError,
    MalformedPointError,
    EmptyResponseError,
    ResultCodeError,
    ValidationError,
    ConfigError,
)
from imperva_waf.enums import (
    ApiGeneration,
    RuleAction,
    BlockDurationPeriodType,
    SiteStatusTest,
    SecurityEventFilter,
    StatsCategory,
    LogLevel,
    ErrorCode,
)
from imperva_waf.config import (
    ClientConfig,
    LoggingConfig,
    AppConfig,
    DEFAULT_HOST,
    REQUEST_TIMEOUT_SECONDS,
)
from imperva_waf.models import (
    Identifier,
    ActiveFlag,
    ApiResult,
    WafException,
    SiteWafRule,
    SiteWaf,
    SiteSecurity,
    IncapRule,
    Site,
    BlockDurationDetails,
    Rule,
    Visit,
    TimeseriesPoint,
    StatsSeries,
    StatsResponse,
    ListSitesOptions,
    VisitOptions,
    StatsOptions,
)
from imperva_waf.audit_logger import (
    AuditLogger,
    LogEntry,
)
from imperva_waf.transport import Transport
from imperva_waf.sites import SitesResource
from imperva_waf.rules import RulesResource
from imperva_waf.sessions import SessionsResource
from imperva_waf.traffic import TrafficResource
from imperva_waf.client import (
    ImpervaClient,
    create_client,
)
from imperva_waf.self_test import (
    SelfTest,
    SelfTestResult,
    ConfigValidationResult,
    ConnectivityResult,
    DumpVerification,
    verify_dump,
    run_self_test,
)
from imperva_waf.cli import (
    main as cli_main,
    create_parser,
    load_config_from_file,
    load_config_from_env,
    save_config_to_file,
)

__all__ = [
    # Exceptions
    "ImpervaError",
    "TransportError",
    "HTTPStatusError",
    "DecodeError",
    "MalformedPointError",
    "EmptyResponseError",
    "ResultCodeError",
    "ValidationError",
    "ConfigError",
    # Enums
    "ApiGeneration",
    "RuleAction",
    "BlockDurationPeriodType",
    "SiteStatusTest",
    "SecurityEventFilter",
    "StatsCategory",
    "LogLevel",
    "ErrorCode",
    # Configuration
    "ClientConfig",
    "LoggingConfig",
    "AppConfig",
    "DEFAULT_HOST",
    "REQUEST_TIMEOUT_SECONDS",
    # Models
    "Identifier",
    "ActiveFlag",
    "ApiResult",
    "WafException",
    "SiteWafRule",
    "SiteWaf",
    "SiteSecurity",
    "IncapRule",
    "Site",
    "BlockDurationDetails",
    "Rule",
    "Visit",
    "TimeseriesPoint",
    "StatsSeries",
    "StatsResponse",
    "ListSitesOptions",
    "VisitOptions",
    "StatsOptions",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Transport and resources
    "Transport",
    "SitesResource",
    "RulesResource",
    "SessionsResource",
    "TrafficResource",
    # Client
    "ImpervaClient",
    "create_client",
    # Self-Test
    "SelfTest",
    "SelfTestResult",
    "ConfigValidationResult",
    "ConnectivityResult",
    "DumpVerification",
    "verify_dump",
    "run_self_test",
    # CLI
    "cli_main",
    "create_parser",
    "load_config_from_file",
    "load_config_from_env",
    "save_config_to_file",
]
