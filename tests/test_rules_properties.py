"""
Property-based tests for the rules resource.

Feature: custom rule CRUD and listing
Properties:
- v1 grouped listings flatten every group in document order
- v3 listings unwrap the ``rule`` member of every item
- Rule identifiers keep their wire type (integer or string)
- Create and update send a POST with only the set fields
- Delete fails on a non-zero result code
"""

import asyncio
import json
from urllib.parse import parse_qs

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from imperva_waf.client import create_client
from imperva_waf.config import ClientConfig
from imperva_waf.enums import ApiGeneration, BlockDurationPeriodType, RuleAction
from imperva_waf.exceptions import DecodeError, ResultCodeError, ValidationError
from imperva_waf.models import BlockDurationDetails, Rule
from imperva_waf.rules import encode_rule, parse_rule, parse_v1_rule_list, parse_v3_rule_list


V3_CONFIG = ClientConfig(api_id="12345", api_key="secret-key")
V1_CONFIG = ClientConfig(api_id="12345", api_key="secret-key", rules_api_generation=ApiGeneration.V1)


def run_with_client(handler, operation, config: ClientConfig = V3_CONFIG):
    async def go():
        async with create_client(config, http_transport=httpx.MockTransport(handler)) as client:
            return await operation(client)

    return asyncio.run(go())


def json_response(payload, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode("utf-8"))


identifier_strategy = st.one_of(
    st.integers(min_value=1, max_value=10**9),
    st.text(alphabet="abcdef0123456789-", min_size=1, max_size=12),
)


@st.composite
def v1_item_strategy(draw):
    return {
        "id": draw(identifier_strategy),
        "name": draw(st.text(min_size=1, max_size=20)),
        "action": draw(st.sampled_from([a.value for a in RuleAction])),
        "rule": draw(st.text(max_size=40)),
    }


class TestV1ListingProperty:
    """
    Property: grouped v1 listings flatten to every rule across all groups.

    Group names vary by account, so no group may be skipped and the order
    inside each group is kept.
    """

    def test_grouped_example(self) -> None:
        raw = json.dumps({
            "res": 0,
            "incap_rules": {
                "All": [{"id": 1, "name": "a", "action": "RULE_ACTION_ALLOW", "rule": "URL == \"/\""}],
                "Security": [{"id": "2", "name": "b", "action": "RULE_ACTION_BLOCK_IP", "rule": "ClientIP == 1.2.3.4"}],
            },
        }).encode()

        rules = parse_v1_rule_list(raw)

        assert [r.rule_id for r in rules] == [1, "2"]
        assert [r.name for r in rules] == ["a", "b"]
        assert rules[0].filter == 'URL == "/"'
        assert rules[1].action_kind is RuleAction.BLOCK_IP

    @given(groups=st.dictionaries(
        st.text(min_size=1, max_size=12),
        st.lists(v1_item_strategy(), max_size=4),
        max_size=4,
    ))
    @settings(max_examples=100)
    def test_all_groups_flattened_in_order(self, groups) -> None:
        raw = json.dumps({"res": 0, "incap_rules": groups}).encode()
        rules = parse_v1_rule_list(raw)

        expected = [item["id"] for items in groups.values() for item in items]
        assert [r.rule_id for r in rules] == expected

    def test_null_groups_is_empty(self) -> None:
        assert parse_v1_rule_list(b'{"res": 0, "incap_rules": null}') == ()

    def test_missing_key_is_decode_error(self) -> None:
        with pytest.raises(DecodeError) as excinfo:
            parse_v1_rule_list(b'{"res": 0, "data": []}')
        assert excinfo.value.tried == ["incap_rules"]


class TestV3ListingProperty:

    def test_flat_example(self) -> None:
        raw = json.dumps({
            "data": [
                {"rule": {"rule_id": 10, "name": "x", "action": "RULE_ACTION_ALLOW", "filter": "URL == \"/a\""}, "site_id": 5, "account_id": 9},
                {"rule": {"rule_id": "abc", "name": "y", "action": "RULE_ACTION_BLOCK_SESSION", "filter": ""}, "site_id": 5, "account_id": 9},
            ]
        }).encode()

        rules = parse_v3_rule_list(raw)

        assert [r.rule_id for r in rules] == [10, "abc"]
        assert type(rules[0].rule_id) is int
        assert type(rules[1].rule_id) is str
        assert rules[1].action_kind is RuleAction.BLOCK_SESSION

    @given(ids=st.lists(identifier_strategy, max_size=6))
    @settings(max_examples=100)
    def test_identifiers_keep_wire_type(self, ids) -> None:
        raw = json.dumps({"data": [{"rule": {"rule_id": i}} for i in ids]}).encode()
        assert [r.rule_id for r in parse_v3_rule_list(raw)] == ids

    def test_missing_data_is_decode_error(self) -> None:
        with pytest.raises(DecodeError):
            parse_v3_rule_list(b'{"incap_rules": {}}')

    def test_unknown_action_is_kept_on_read(self) -> None:
        raw = json.dumps({"data": [{"rule": {"rule_id": 1, "action": "RULE_ACTION_NEW"}}]}).encode()
        (rule,) = parse_v3_rule_list(raw)
        assert rule.action == "RULE_ACTION_NEW"
        assert rule.action_kind is None


class TestRuleEncodingProperty:

    def test_only_set_fields_are_sent(self) -> None:
        body = encode_rule(Rule(name="block bad ip", action=RuleAction.BLOCK_IP.value, filter="ClientIP == 1.2.3.4"))
        assert body == {
            "name": "block bad ip",
            "action": "RULE_ACTION_BLOCK_IP",
            "filter": "ClientIP == 1.2.3.4",
        }

    def test_block_duration_is_encoded(self) -> None:
        rule = Rule(
            name="n",
            action=RuleAction.BLOCK_USER.value,
            enabled=False,
            block_duration_details=BlockDurationDetails(BlockDurationPeriodType.FIXED, 30),
        )
        body = encode_rule(rule)
        assert body["enabled"] is False
        assert body["blockDurationDetails"] == {
            "blockDurationPeriodType": "fixed",
            "blockFixedDurationValue": 30,
        }

    def test_unknown_action_rejected_on_write(self) -> None:
        with pytest.raises(ValidationError):
            encode_rule(Rule(name="n", action="BLOCK_EVERYTHING"))

    def test_block_duration_decodes(self) -> None:
        raw = json.dumps({
            "res": 0,
            "rule_id": 3,
            "blockDurationDetails": {"blockDurationPeriodType": "fixed", "blockFixedDurationValue": 15},
        }).encode()
        rule = parse_rule(raw, "get rule")
        assert rule.block_duration_details == BlockDurationDetails(BlockDurationPeriodType.FIXED, 15)


class TestRuleRequestProperty:
    """Property: each rule operation uses its documented method and path."""

    def test_create_rule_posts_body(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return json_response({"rule_id": 555, "name": "n", "action": "RULE_ACTION_ALLOW", "filter": "f"})

        created = run_with_client(
            handler,
            lambda c: c.create_rule(42, Rule(name="n", action="RULE_ACTION_ALLOW", filter="f")),
        )

        assert created.rule_id == 555
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/api/prov/v2/sites/42/rules"
        assert json.loads(seen[0].content) == {"name": "n", "action": "RULE_ACTION_ALLOW", "filter": "f"}

    def test_update_rule_uses_post(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return json_response({"rule_id": 555, "name": "renamed"})

        updated = run_with_client(handler, lambda c: c.update_rule(42, 555, Rule(name="renamed")))

        assert updated.name == "renamed"
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/api/prov/v2/sites/42/rules/555"

    def test_get_rule(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return json_response({"rule_id": "r-1", "name": "n"})

        rule = run_with_client(handler, lambda c: c.get_rule(42, "r-1"))

        assert rule.rule_id == "r-1"
        assert seen[0].method == "GET"
        assert seen[0].url.path == "/api/prov/v2/sites/42/rules/r-1"
        assert seen[0].content == b""

    def test_delete_rule_succeeds_on_zero(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return json_response({"res": 0, "res_message": "OK"})

        assert run_with_client(handler, lambda c: c.delete_rule(42, 555)) is None
        assert seen[0].method == "DELETE"

    def test_delete_rule_fails_on_non_zero(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return json_response({"res": 2, "res_message": "rule not found"})

        with pytest.raises(ResultCodeError) as excinfo:
            run_with_client(handler, lambda c: c.delete_rule(42, 555))
        assert excinfo.value.result_code == 2

    def test_v3_listing_request(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return json_response({"data": []})

        assert run_with_client(handler, lambda c: c.list_rules(42)) == ()
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/api/prov/v3/rules"
        assert parse_qs(request.url.query.decode()) == {"siteIds": ["42"], "page_size": ["100"]}

    def test_v1_listing_request(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return json_response({"res": 0, "incap_rules": {"All": [{"id": 1}]}})

        rules = run_with_client(handler, lambda c: c.list_rules(42), V1_CONFIG)

        assert [r.rule_id for r in rules] == [1]
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/api/prov/v1/sites/incapRules/list"
        assert parse_qs(request.url.query.decode()) == {
            "site_id": ["42"],
            "page_size": ["100"],
            "page_num": ["0"],
        }
        assert json.loads(request.content) == {}


class TestDeleteResultProperty:
    """Property: a delete response without ``res`` counts as success."""

    @pytest.mark.parametrize("body", [b"{}", b'{"res_message": "OK"}'])
    def test_object_without_result_code_succeeds(self, body: bytes) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body)

        assert run_with_client(handler, lambda c: c.delete_rule(42, 555)) is None

    @pytest.mark.parametrize("body", [b"[]", b'"deleted"', b"not json"])
    def test_non_object_body_is_decode_error(self, body: bytes) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body)

        with pytest.raises(DecodeError):
            run_with_client(handler, lambda c: c.delete_rule(42, 555))
