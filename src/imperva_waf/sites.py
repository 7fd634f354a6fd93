"""
Sites resource: listing protected sites and reading a site's status.

Site records are decoded field by field so that each polymorphic wire field
(the ``active`` flag, WAF rule and exception identifiers) is read through
its tagged-union decoder.
"""

from typing import Any, Optional, Sequence, Union
from urllib.parse import urlencode

from .audit_logger import AuditLogger
from .enums import SiteStatusTest
from .exceptions import ValidationError
from .models import (
    IncapRule,
    ListSitesOptions,
    Site,
    SiteSecurity,
    SiteWaf,
    SiteWafRule,
    WafException,
)
from .normalize import (
    check_result_code,
    decode_active,
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


COMPONENT = "sites"

LIST_SITES_PATH = "/api/prov/v1/sites/list"
SITE_STATUS_PATH = "/api/prov/v1/sites/status"


def decode_waf_exception(data: Any) -> WafException:
    data = require_object(data, "waf exception")
    return WafException(
        id=decode_identifier(data.get("id"), "id"),
        values=tuple(decode_list(data.get("values"), "values")),
    )


def decode_site_waf_rule(data: Any) -> SiteWafRule:
    data = require_object(data, "waf rule")
    return SiteWafRule(
        id=decode_identifier(data.get("id"), "id"),
        name=decode_str(data.get("name"), "name"),
        action=decode_str(data.get("action"), "action"),
        action_text=decode_str(data.get("action_text"), "action_text"),
        exceptions=decode_items(data.get("exceptions"), "exceptions", decode_waf_exception),
    )


def decode_site_security(data: Any) -> Optional[SiteSecurity]:
    if data is None:
        return None
    data = require_object(data, "security")
    waf = None
    raw_waf = data.get("waf")
    if raw_waf is not None:
        raw_waf = require_object(raw_waf, "waf")
        waf = SiteWaf(rules=decode_items(raw_waf.get("rules"), "rules", decode_site_waf_rule))
    return SiteSecurity(waf=waf)


def decode_incap_rule(data: Any) -> IncapRule:
    data = require_object(data, "incap rule")
    return IncapRule(
        id=decode_identifier(data.get("id"), "id"),
        name=decode_str(data.get("name"), "name"),
        action=decode_str(data.get("action"), "action"),
        rule=decode_str(data.get("rule"), "rule"),
        creation_date=decode_int(data.get("creation_date"), "creation_date"),
    )


def decode_site(data: Any) -> Site:
    """Decode one site record; extra keys (such as ``res``) are ignored."""
    data = require_object(data, "site")
    return Site(
        site_id=decode_int(data.get("site_id"), "site_id"),
        domain=decode_str(data.get("domain"), "domain"),
        status=decode_str(data.get("status"), "status"),
        active=decode_active(data.get("active")),
        security=decode_site_security(data.get("security")),
        account_id=decode_int(data.get("account_id"), "account_id"),
        acceleration_level=decode_str(data.get("acceleration_level"), "acceleration_level"),
        site_creation_date=decode_int(data.get("site_creation_date"), "site_creation_date"),
        display_name=decode_str(data.get("display_name"), "display_name"),
        ips=decode_str_list(data.get("ips"), "ips"),
        dns=tuple(decode_list(data.get("dns"), "dns")),
        incap_rules=decode_items(data.get("incap_rules"), "incap_rules", decode_incap_rule),
    )


# Envelope keys for the site list, in priority order:
#   "sites"               current v1 list response
#   "ApiResultSiteStatus" legacy documented key
#   "data"                generic wrapper used by newer endpoints
SITE_LIST_ENVELOPES = [
    keyed_list("sites", decode_site),
    keyed_list("ApiResultSiteStatus", decode_site),
    keyed_list("data", decode_site),
]


def normalize_site_tests(tests: Union[str, Sequence[Union[str, SiteStatusTest]], None]) -> str:
    """
    Validate the site status tests and join them with commas.

    Raises:
        ValidationError: If a test name is not one of the known tests
    """
    if not tests:
        return ""
    if isinstance(tests, str):
        names = [t.strip() for t in tests.split(",") if t.strip()]
    else:
        names = [t.value if isinstance(t, SiteStatusTest) else str(t).strip() for t in tests]

    known = {t.value for t in SiteStatusTest}
    unknown = [name for name in names if name not in known]
    if unknown:
        raise ValidationError(
            f"Unknown site status test(s): {', '.join(unknown)}",
            details={"unknown": unknown, "allowed": sorted(known)},
        )
    return ",".join(names)


def parse_site_list(raw: bytes, logger: Optional[AuditLogger] = None) -> tuple[Site, ...]:
    """Parse a list-sites response body."""
    payload = parse_json(raw, "list sites")
    check_result_code(payload, "list sites")
    matched, sites = match_envelope(payload, SITE_LIST_ENVELOPES, "sites list")
    if logger:
        logger.debug(COMPONENT, "Decoded site list", {"envelope": matched, "count": len(sites)})
    return sites


def parse_site_status(raw: bytes) -> Site:
    """Parse a site-status response: site fields flattened beside ``res``."""
    payload = parse_json(raw, "site status")
    check_result_code(payload, "get site status")
    return decode_site(payload)


class SitesResource:
    """Site listing and status operations."""

    def __init__(
        self,
        transport: Transport,
        account_id: Optional[str] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._transport = transport
        self._account_id = account_id
        self._logger = logger

    async def list_sites(self, options: Optional[ListSitesOptions] = None) -> tuple[Site, ...]:
        """
        List the account's sites.

        The API takes its parameters as a query string on a POST with an
        empty JSON object as the body.

        Args:
            options: Pagination; defaults to page_size=100, page_num=0

        Raises:
            ResultCodeError: If the API reports a non-zero result code
            DecodeError: If no known envelope key holds a site list
        """
        options = options or ListSitesOptions()
        params = {
            "page_size": str(options.page_size),
            "page_num": str(options.page_num),
        }
        if self._account_id:
            params["account_id"] = self._account_id

        raw = await self._transport.post(f"{LIST_SITES_PATH}?{urlencode(params)}", {})
        return parse_site_list(raw, self._logger)

    async def get_site_status(
        self,
        site_id: int,
        tests: Union[str, Sequence[Union[str, SiteStatusTest]], None] = None,
    ) -> Site:
        """
        Get the status of one site.

        Args:
            site_id: Site identifier
            tests: Optional subset of domain_validation, services, dns to run
                before the status is returned

        Raises:
            ValidationError: If ``tests`` names an unknown test
            ResultCodeError: If the API reports a non-zero result code
        """
        params = {"site_id": str(site_id)}
        joined = normalize_site_tests(tests)
        if joined:
            params["tests"] = joined

        raw = await self._transport.post(f"{SITE_STATUS_PATH}?{urlencode(params)}", {})
        return parse_site_status(raw)
