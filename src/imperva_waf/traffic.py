"""
Visits & stats resource: traffic logs and aggregated statistics.

Both endpoints are POSTs that take every parameter in the query string and
send no body.
"""

from typing import Any, Optional, Sequence, Union
from urllib.parse import urlencode

from .audit_logger import AuditLogger
from .enums import SecurityEventFilter, StatsCategory
from .exceptions import MalformedPointError, ValidationError
from .models import (
    ApiResult,
    StatsOptions,
    StatsResponse,
    StatsSeries,
    TimeseriesPoint,
    Visit,
    VisitOptions,
)
from .normalize import (
    bare_list,
    check_result_code,
    decode_identifier,
    decode_int,
    decode_items,
    decode_list,
    decode_str,
    decode_str_list,
    keyed_list,
    match_envelope,
    parse_json,
    require_object,
)
from .transport import Transport


COMPONENT = "traffic"

VISITS_PATH = "/api/visits/v1"
STATS_PATH = "/api/stats/v1"

DEFAULT_TIME_RANGE = "last_7_days"
CUSTOM_TIME_RANGE = "custom"


def decode_point(value: Any) -> TimeseriesPoint:
    """
    Decode a ``[timestamp, value]`` pair positionally.

    The timestamp is truncated to an integer and the value kept as a float.
    Elements past the second are ignored.

    Raises:
        MalformedPointError: If the value is not an array of at least two numbers
    """
    if not isinstance(value, list):
        raise MalformedPointError(
            f"invalid timeseries point: expected array, got {type(value).__name__}"
        )
    if len(value) < 2:
        raise MalformedPointError(
            f"invalid timeseries point: expected 2 elements, got {len(value)}"
        )
    timestamp, amount = value[0], value[1]
    for element in (timestamp, amount):
        if isinstance(element, bool) or not isinstance(element, (int, float)):
            raise MalformedPointError(
                f"invalid timeseries point: expected numbers, got {value[:2]!r}"
            )
    return TimeseriesPoint(timestamp=int(timestamp), value=float(amount))


def decode_stats_series(data: Any) -> StatsSeries:
    data = require_object(data, "stats series")
    return StatsSeries(
        id=decode_identifier(data.get("id"), "id"),
        name=decode_str(data.get("name"), "name"),
        data=decode_items(data.get("data"), "data", decode_point),
    )


def decode_visit(data: Any) -> Visit:
    """
    Decode one visit.

    Client IPs and countries have been emitted both as a single string and
    as an array; the older singular ``clientIP`` key is read when
    ``clientIPs`` is absent.
    """
    data = require_object(data, "visit")
    client_ips = data.get("clientIPs")
    if client_ips is None:
        client_ips = data.get("clientIP")
    return Visit(
        id=decode_identifier(data.get("id"), "id"),
        site_id=decode_int(data.get("siteId"), "siteId"),
        client_ips=decode_str_list(client_ips, "clientIPs"),
        countries=decode_str_list(data.get("country"), "country"),
        country_codes=decode_str_list(data.get("countryCode"), "countryCode"),
        start_time=decode_int(data.get("startTime"), "startTime"),
        end_time=decode_int(data.get("endTime"), "endTime"),
    )


# Visit list envelopes, in priority order:
#   "visits"  documented v1 response
#   "data"    generic wrapper
#   bare top-level array
VISIT_ENVELOPES = [
    keyed_list("visits", decode_visit),
    keyed_list("data", decode_visit),
    bare_list(decode_visit),
]


def _time_range_params(
    time_range: str,
    start: Optional[int],
    end: Optional[int],
) -> dict[str, str]:
    params = {"time_range": time_range}
    if time_range == CUSTOM_TIME_RANGE:
        if start is None or end is None:
            raise ValidationError("A custom time range needs both start and end")
        params["start"] = str(start)
        params["end"] = str(end)
    return params


def normalize_stats_categories(stats: Union[str, Sequence[Union[str, StatsCategory]], None]) -> str:
    """
    Validate requested stat categories and join them with commas.

    Raises:
        ValidationError: If a name is not a known category
    """
    if not stats:
        return ""
    if isinstance(stats, str):
        names = [s.strip() for s in stats.split(",") if s.strip()]
    else:
        names = [s.value if isinstance(s, StatsCategory) else str(s).strip() for s in stats]

    known = {c.value for c in StatsCategory}
    unknown = [name for name in names if name not in known]
    if unknown:
        raise ValidationError(
            f"Unknown stats categories: {', '.join(unknown)}",
            details={"unknown": unknown},
        )
    return ",".join(names)


def build_visits_query(site_id: int, options: VisitOptions) -> str:
    params = {"site_id": str(site_id)}
    params.update(_time_range_params(
        options.time_range or DEFAULT_TIME_RANGE, options.start, options.end
    ))
    if options.page_size > 0:
        params["page_size"] = str(options.page_size)
    if options.page_num > 0:
        params["page_num"] = str(options.page_num)
    if options.security_events:
        try:
            params["security"] = SecurityEventFilter(options.security_events).value
        except ValueError:
            raise ValidationError(
                f"Unknown security events filter: {options.security_events!r}",
                details={"allowed": [f.value for f in SecurityEventFilter]},
            ) from None
    return urlencode(params)


def build_stats_query(site_id: int, options: StatsOptions) -> str:
    params = {"site_id": str(site_id)}
    if options.time_range:
        params.update(_time_range_params(options.time_range, options.start, options.end))
    stats = normalize_stats_categories(options.stats)
    if stats:
        params["stats"] = stats
    if options.granularity:
        params["granularity"] = str(options.granularity)
    return urlencode(params)


def parse_visits(raw: bytes, logger: Optional[AuditLogger] = None) -> tuple[Visit, ...]:
    payload = parse_json(raw, "visits")
    check_result_code(payload, "get visits")
    matched, visits = match_envelope(payload, VISIT_ENVELOPES, "visits list")
    if logger:
        logger.debug(COMPONENT, "Decoded visits", {"envelope": matched, "count": len(visits)})
    return visits


def parse_stats(raw: bytes) -> StatsResponse:
    """Decode a stats response; absent categories stay empty."""
    payload = parse_json(raw, "stats")
    result = check_result_code(payload, "get stats") or ApiResult()
    payload = require_object(payload, "stats response")

    categories = {}
    for category in StatsCategory:
        key = category.value
        categories[key] = tuple(
            decode_stats_series(item) for item in decode_list(payload.get(key), key)
        )
    return StatsResponse(result=result, **categories)


class TrafficResource:
    """Visits and stats for a site."""

    def __init__(
        self,
        transport: Transport,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._transport = transport
        self._logger = logger

    async def get_visits(
        self,
        site_id: int,
        options: Optional[VisitOptions] = None,
    ) -> tuple[Visit, ...]:
        """
        Fetch visits for a site.

        Raises:
            ValidationError: If the options are inconsistent
            DecodeError: If no known envelope holds a visit list
        """
        query = build_visits_query(site_id, options or VisitOptions())
        raw = await self._transport.post(f"{VISITS_PATH}?{query}")
        return parse_visits(raw, self._logger)

    async def get_stats(
        self,
        site_id: int,
        options: Optional[StatsOptions] = None,
    ) -> StatsResponse:
        """
        Fetch aggregated statistics for a site.

        Raises:
            ValidationError: If an unknown category is requested
            MalformedPointError: If a timeseries point is not a pair of numbers
        """
        query = build_stats_query(site_id, options or StatsOptions())
        raw = await self._transport.post(f"{STATS_PATH}?{query}")
        stats = parse_stats(raw)
        if self._logger:
            self._logger.debug(COMPONENT, "Decoded stats", {
                "site_id": site_id,
                "series": {
                    c.value: len(getattr(stats, c.value)) for c in StatsCategory
                    if getattr(stats, c.value)
                },
            })
        return stats
