"""
Rules resource: custom rule CRUD and listing.

Single-rule operations use the v2 API. Listing exists in two generations
with incompatible envelopes; the client is configured for exactly one of
them and never guesses between the two on one response:

- v3: GET listing, ``{"data": [{"rule": {...}, "site_id": .., "account_id": ..}]}``
- v1: POST listing, ``{"incap_rules": {"<group name>": [{...}, ...], ...}}``
"""

from typing import Any, Optional
from urllib.parse import urlencode

from .audit_logger import AuditLogger
from .enums import ApiGeneration, BlockDurationPeriodType, RuleAction
from .exceptions import DecodeError, ValidationError
from .models import BlockDurationDetails, Identifier, Rule
from .normalize import (
    check_result_code,
    decode_identifier,
    decode_int,
    decode_list,
    decode_optional_bool,
    decode_optional_int,
    decode_str,
    parse_json,
    require_object,
)
from .transport import Transport


COMPONENT = "rules"

RULES_PATH = "/api/prov/v2/sites/{site_id}/rules"
RULE_PATH = "/api/prov/v2/sites/{site_id}/rules/{rule_id}"
V3_LIST_PATH = "/api/prov/v3/rules"
V1_LIST_PATH = "/api/prov/v1/sites/incapRules/list"

LIST_PAGE_SIZE = 100


def decode_block_duration(data: Any) -> Optional[BlockDurationDetails]:
    if data is None:
        return None
    data = require_object(data, "blockDurationDetails")
    raw_type = decode_str(data.get("blockDurationPeriodType"), "blockDurationPeriodType")
    period_type = None
    if raw_type:
        try:
            period_type = BlockDurationPeriodType(raw_type)
        except ValueError:
            raise DecodeError(f"unknown blockDurationPeriodType: {raw_type!r}") from None
    return BlockDurationDetails(
        period_type=period_type,
        fixed_duration_minutes=decode_int(
            data.get("blockFixedDurationValue"), "blockFixedDurationValue"
        ),
    )


def decode_rule(data: Any) -> Rule:
    """Decode a v2/v3 rule object."""
    data = require_object(data, "rule")
    return Rule(
        rule_id=decode_identifier(data.get("rule_id"), "rule_id"),
        name=decode_str(data.get("name"), "name"),
        action=decode_str(data.get("action"), "action"),
        filter=decode_str(data.get("filter"), "filter"),
        response_code=decode_optional_int(data.get("response_code"), "response_code"),
        enabled=decode_optional_bool(data.get("enabled"), "enabled"),
        block_duration_details=decode_block_duration(data.get("blockDurationDetails")),
    )


def decode_v1_rule(data: Any) -> Rule:
    """Decode a v1 listing item, which names the id ``id`` and the filter ``rule``."""
    data = require_object(data, "incap rule")
    return Rule(
        rule_id=decode_identifier(data.get("id"), "id"),
        name=decode_str(data.get("name"), "name"),
        action=decode_str(data.get("action"), "action"),
        filter=decode_str(data.get("rule"), "rule"),
    )


def encode_rule(rule: Rule) -> dict:
    """
    Build the request body for create/update, omitting unset fields.

    Raises:
        ValidationError: If the action is not a known rule action
    """
    body: dict[str, Any] = {}
    if rule.name:
        body["name"] = rule.name
    if rule.action:
        if rule.action_kind is None:
            raise ValidationError(
                f"Unknown rule action: {rule.action!r}",
                details={"allowed": [a.value for a in RuleAction]},
            )
        body["action"] = rule.action
    if rule.filter:
        body["filter"] = rule.filter
    if rule.response_code:
        body["response_code"] = rule.response_code
    if rule.enabled is not None:
        body["enabled"] = rule.enabled
    if rule.block_duration_details is not None:
        details = rule.block_duration_details
        block: dict[str, Any] = {}
        if details.period_type is not None:
            block["blockDurationPeriodType"] = details.period_type.value
        if details.fixed_duration_minutes:
            block["blockFixedDurationValue"] = details.fixed_duration_minutes
        body["blockDurationDetails"] = block
    return body


def parse_rule(raw: bytes, operation: str) -> Rule:
    payload = parse_json(raw, operation)
    check_result_code(payload, operation)
    return decode_rule(payload)


def parse_v3_rule_list(raw: bytes) -> tuple[Rule, ...]:
    """Extract the ``rule`` member of every item in a v3 ``data`` array."""
    payload = parse_json(raw, "list rules")
    check_result_code(payload, "list rules")
    payload = require_object(payload, "list rules response")
    if "data" not in payload:
        raise DecodeError("could not find rules list in response: expected key 'data'", tried=["data"])

    rules = []
    for item in decode_list(payload["data"], "data"):
        item = require_object(item, "rule list item")
        rules.append(decode_rule(item.get("rule")))
    return tuple(rules)


def parse_v1_rule_list(raw: bytes) -> tuple[Rule, ...]:
    """
    Flatten every group under ``incap_rules``.

    Group names are not stable across accounts, so all groups are read in
    document order and each group's internal order is kept.
    """
    payload = parse_json(raw, "list rules")
    check_result_code(payload, "list rules")
    payload = require_object(payload, "list rules response")
    if "incap_rules" not in payload:
        raise DecodeError(
            "could not find rules list in response: expected key 'incap_rules'",
            tried=["incap_rules"],
        )

    groups = payload["incap_rules"]
    if groups is None:
        return ()
    groups = require_object(groups, "incap_rules")

    rules = []
    for group_name, items in groups.items():
        for item in decode_list(items, f"incap_rules.{group_name}"):
            rules.append(decode_v1_rule(item))
    return tuple(rules)


class RulesResource:
    """Custom rule operations scoped to a site."""

    def __init__(
        self,
        transport: Transport,
        generation: ApiGeneration = ApiGeneration.V3,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._transport = transport
        self._generation = generation
        self._logger = logger

    @property
    def generation(self) -> ApiGeneration:
        """The API generation used by list_rules."""
        return self._generation

    async def create_rule(self, site_id: int, rule: Rule) -> Rule:
        path = RULES_PATH.format(site_id=site_id)
        raw = await self._transport.post(path, encode_rule(rule))
        created = parse_rule(raw, "create rule")
        self._audit("Rule created", site_id, created.rule_id)
        return created

    async def get_rule(self, site_id: int, rule_id: Identifier) -> Rule:
        raw = await self._transport.get(RULE_PATH.format(site_id=site_id, rule_id=rule_id))
        return parse_rule(raw, "get rule")

    async def update_rule(self, site_id: int, rule_id: Identifier, rule: Rule) -> Rule:
        """Update a rule. The vendor documents POST, not PUT, for updates."""
        path = RULE_PATH.format(site_id=site_id, rule_id=rule_id)
        raw = await self._transport.post(path, encode_rule(rule))
        updated = parse_rule(raw, "update rule")
        self._audit("Rule updated", site_id, rule_id)
        return updated

    async def delete_rule(self, site_id: int, rule_id: Identifier) -> None:
        """
        Delete a rule.

        Raises:
            ResultCodeError: If the API reports a non-zero result code
            DecodeError: If the response body is not a JSON object; an object
                without ``res`` counts as success
        """
        raw = await self._transport.delete(RULE_PATH.format(site_id=site_id, rule_id=rule_id))
        payload = parse_json(raw, "delete rule")
        require_object(payload, "delete rule response")
        check_result_code(payload, "delete rule")
        self._audit("Rule deleted", site_id, rule_id)

    async def list_rules(self, site_id: int) -> tuple[Rule, ...]:
        """List a site's rules using the configured API generation."""
        if self._generation is ApiGeneration.V1:
            params = urlencode({
                "site_id": str(site_id),
                "page_size": str(LIST_PAGE_SIZE),
                "page_num": "0",
            })
            raw = await self._transport.post(f"{V1_LIST_PATH}?{params}", {})
            rules = parse_v1_rule_list(raw)
        else:
            params = urlencode({"siteIds": str(site_id), "page_size": str(LIST_PAGE_SIZE)})
            raw = await self._transport.get(f"{V3_LIST_PATH}?{params}")
            rules = parse_v3_rule_list(raw)

        if self._logger:
            self._logger.debug(COMPONENT, "Decoded rule list", {
                "generation": self._generation.value,
                "site_id": site_id,
                "count": len(rules),
            })
        return rules

    def _audit(self, message: str, site_id: int, rule_id: Optional[Identifier]) -> None:
        if self._logger:
            self._logger.info(COMPONENT, message, {"site_id": site_id, "rule_id": rule_id})
