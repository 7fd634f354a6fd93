"""
Data models for the Imperva WAF client.

Every entity is an immutable value record built fresh from one API response.
Fields whose wire type varies between API generations keep the raw value
(see the ``Identifier`` and ``ActiveFlag`` aliases) and expose derived
accessors instead of coercing.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .enums import BlockDurationPeriodType, RuleAction


# int in one API generation, str in another
Identifier = Union[int, str]

# bool true/false or a string such as "active"
ActiveFlag = Union[bool, str, None]


@dataclass(frozen=True)
class ApiResult:
    """The common ``{res, res_message, debug_info}`` result envelope."""

    res: int = 0
    res_message: str = ""
    debug_info: Any = None

    @property
    def ok(self) -> bool:
        return self.res == 0


@dataclass(frozen=True)
class WafException:
    """An exception attached to a site WAF rule."""

    id: Optional[Identifier] = None
    values: tuple[Any, ...] = ()


@dataclass(frozen=True)
class SiteWafRule:
    """A WAF rule as embedded in a site's security configuration."""

    id: Optional[Identifier] = None
    name: str = ""
    action: str = ""
    action_text: str = ""
    exceptions: tuple[WafException, ...] = ()


@dataclass(frozen=True)
class SiteWaf:
    rules: tuple[SiteWafRule, ...] = ()


@dataclass(frozen=True)
class SiteSecurity:
    waf: Optional[SiteWaf] = None


@dataclass(frozen=True)
class IncapRule:
    """Legacy rule record embedded in v1 site payloads."""

    id: Optional[Identifier] = None
    name: str = ""
    action: str = ""
    rule: str = ""
    creation_date: int = 0


@dataclass(frozen=True)
class Site:
    """A protected web property."""

    site_id: int
    domain: str = ""
    status: str = ""
    active: ActiveFlag = None
    security: Optional[SiteSecurity] = None
    account_id: int = 0
    acceleration_level: str = ""
    site_creation_date: int = 0
    display_name: str = ""
    ips: tuple[str, ...] = ()
    dns: tuple[Any, ...] = ()
    incap_rules: tuple[IncapRule, ...] = ()

    @property
    def is_active(self) -> bool:
        """True for ``true``, ``"active"`` or ``"true"``; False otherwise."""
        if isinstance(self.active, bool):
            return self.active
        if isinstance(self.active, str):
            return self.active in ("active", "true")
        return False

    @property
    def waf_rules(self) -> tuple[SiteWafRule, ...]:
        if self.security is None or self.security.waf is None:
            return ()
        return self.security.waf.rules


@dataclass(frozen=True)
class BlockDurationDetails:
    """Block duration policy for blocking rule actions."""

    period_type: Optional[BlockDurationPeriodType] = None
    fixed_duration_minutes: int = 0


@dataclass(frozen=True)
class Rule:
    """A custom rule scoped to one site."""

    name: str = ""
    action: str = ""
    filter: str = ""
    rule_id: Optional[Identifier] = None  # read-only, assigned by the API
    response_code: Optional[int] = None
    enabled: Optional[bool] = None
    block_duration_details: Optional[BlockDurationDetails] = None

    @property
    def action_kind(self) -> Optional[RuleAction]:
        """The action as a RuleAction, or None for an unrecognized value."""
        try:
            return RuleAction(self.action)
        except ValueError:
            return None


@dataclass(frozen=True)
class Visit:
    """One traffic log entry."""

    id: Optional[Identifier] = None
    site_id: int = 0
    client_ips: tuple[str, ...] = ()
    countries: tuple[str, ...] = ()
    country_codes: tuple[str, ...] = ()
    start_time: int = 0  # Unix timestamp
    end_time: int = 0  # Unix timestamp


@dataclass(frozen=True)
class TimeseriesPoint:
    timestamp: int
    value: float


@dataclass(frozen=True)
class StatsSeries:
    """A named statistic series."""

    id: Optional[Identifier] = None
    name: str = ""
    data: tuple[TimeseriesPoint, ...] = ()

    @property
    def latest(self) -> Optional[TimeseriesPoint]:
        return self.data[-1] if self.data else None


@dataclass(frozen=True)
class StatsResponse:
    """
    Aggregated statistics for a site.

    Each category is independently optional; categories that were not
    requested are empty tuples.
    """

    result: ApiResult = field(default_factory=ApiResult)
    visits_timeseries: tuple[StatsSeries, ...] = ()
    hits_timeseries: tuple[StatsSeries, ...] = ()
    bandwidth_timeseries: tuple[StatsSeries, ...] = ()
    requests_geo_dist_summary: tuple[StatsSeries, ...] = ()
    visits_dist_summary: tuple[StatsSeries, ...] = ()
    caching: tuple[StatsSeries, ...] = ()
    caching_timeseries: tuple[StatsSeries, ...] = ()
    threats: tuple[StatsSeries, ...] = ()
    incap_rules: tuple[StatsSeries, ...] = ()
    incap_rules_timeseries: tuple[StatsSeries, ...] = ()
    delivery_rules: tuple[StatsSeries, ...] = ()
    delivery_rules_timeseries: tuple[StatsSeries, ...] = ()


@dataclass(frozen=True)
class ListSitesOptions:
    page_size: int = 100
    page_num: int = 0


@dataclass(frozen=True)
class VisitOptions:
    """Query options for the visits API."""

    time_range: str = ""  # 'last_hour', 'last_7_days', 'custom', ...; empty means last_7_days
    start: Optional[int] = None  # epoch seconds, custom range only
    end: Optional[int] = None
    page_size: int = 0
    page_num: int = 0
    security_events: Optional[str] = None  # 'all' or 'blocked'


@dataclass(frozen=True)
class StatsOptions:
    """Query options for the stats API."""

    time_range: str = ""
    stats: Union[str, tuple[str, ...]] = ""  # comma separated or a sequence
    start: Optional[int] = None
    end: Optional[int] = None
    granularity: Optional[int] = None  # milliseconds
