"""
Enumeration types for the Imperva WAF client.

These enums provide type-safe constants for vendor wire values, error codes,
and configuration options throughout the client.
"""

from enum import Enum


class ApiGeneration(Enum):
    """Vendor API generation used for listing rules."""

    V1 = "v1"  # POST listing, rules grouped by name under "incap_rules"
    V3 = "v3"  # GET listing, flat "data" array of {rule, site_id, account_id}


class RuleAction(Enum):
    """Actions a custom rule can take."""

    REDIRECT = "RULE_ACTION_REDIRECT"
    SIMPLIFIED_REDIRECT = "RULE_ACTION_SIMPLIFIED_REDIRECT"
    BLOCK_IP = "RULE_ACTION_BLOCK_IP"
    BLOCK_USER = "RULE_ACTION_BLOCK_USER"
    BLOCK_SESSION = "RULE_ACTION_BLOCK_SESSION"
    CHALLENGE_COOKIE = "RULE_ACTION_CHALLENGE_COOKIE"
    CHALLENGE_JS = "RULE_ACTION_CHALLENGE_JS"
    CHALLENGE_CAPTCHA = "RULE_ACTION_CHALLENGE_CAPTCHA"
    ALLOW = "RULE_ACTION_ALLOW"
    REWRITE_URL = "RULE_ACTION_REWRITE_URL"


class BlockDurationPeriodType(Enum):
    """How long a blocking rule keeps a client blocked."""

    FIXED = "fixed"
    CUSTOM = "custom"


class SiteStatusTest(Enum):
    """Tests the API can run before returning a site's status."""

    DOMAIN_VALIDATION = "domain_validation"
    SERVICES = "services"
    DNS = "dns"


class SecurityEventFilter(Enum):
    """Filter for visits by security handling."""

    ALL = "all"
    BLOCKED = "blocked"


class StatsCategory(Enum):
    """Statistic categories accepted by the stats API."""

    VISITS_TIMESERIES = "visits_timeseries"
    HITS_TIMESERIES = "hits_timeseries"
    BANDWIDTH_TIMESERIES = "bandwidth_timeseries"
    REQUESTS_GEO_DIST_SUMMARY = "requests_geo_dist_summary"
    VISITS_DIST_SUMMARY = "visits_dist_summary"
    CACHING = "caching"
    CACHING_TIMESERIES = "caching_timeseries"
    THREATS = "threats"
    INCAP_RULES = "incap_rules"
    INCAP_RULES_TIMESERIES = "incap_rules_timeseries"
    DELIVERY_RULES = "delivery_rules"
    DELIVERY_RULES_TIMESERIES = "delivery_rules_timeseries"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class ErrorCode(Enum):
    """Error codes carried by ImpervaError subclasses."""

    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    DECODE_ERROR = "decode_error"
    MALFORMED_POINT = "malformed_point"
    EMPTY_RESPONSE = "empty_response"
    RESULT_CODE = "result_code"
    INVALID_OPTION = "invalid_option"
    CONFIG_ERROR = "config_error"

