"""
Tests for the self-test and offline dump verification.
"""

import asyncio
import json
from pathlib import Path

import httpx

from imperva_waf.config import ClientConfig
from imperva_waf.self_test import SelfTest, verify_dump


def run_self_test(config: ClientConfig, handler):
    self_test = SelfTest(config, http_transport=httpx.MockTransport(handler))
    return asyncio.run(self_test.run())


class TestConfigValidation:

    def test_valid_config_warns_without_account(self) -> None:
        result = SelfTest(ClientConfig(api_id="1", api_key="k")).validate_config()
        assert result.valid
        assert result.errors == []
        assert len(result.warnings) == 1

    def test_missing_credentials(self) -> None:
        result = SelfTest(ClientConfig(api_id="", api_key="", account_id="7")).validate_config()
        assert not result.valid
        assert len(result.errors) == 2
        assert result.warnings == []

    def test_plain_http_rejected(self) -> None:
        config = ClientConfig(api_id="1", api_key="k", host="http://my.imperva.com")
        result = SelfTest(config).validate_config()
        assert not result.valid
        assert any("HTTPS" in e for e in result.errors)


class TestConnectivityCheck:

    def test_connectivity_check_lists_one_site(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"res": 0, "sites": [{"site_id": 1}]})

        result = run_self_test(ClientConfig(api_id="1", api_key="k"), handler)

        assert result.success
        assert result.connectivity.sites_visible == 1
        assert seen[0].url.params["page_size"] == "1"
        assert seen[0].url.params["page_num"] == "0"

    def test_connectivity_check_reports_result_code(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"res": 9403, "res_message": "Authentication missing or invalid"})

        result = run_self_test(ClientConfig(api_id="1", api_key="bad"), handler)

        assert not result.success
        assert result.connectivity.error_code == "result_code"
        assert "Authentication" in result.connectivity.error

    def test_connectivity_check_reports_http_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, content=b"unauthorized")

        result = run_self_test(ClientConfig(api_id="1", api_key="bad"), handler)

        assert not result.success
        assert result.connectivity.error_code == "http_status"

    def test_invalid_config_skips_connectivity_check(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        result = run_self_test(ClientConfig(api_id="", api_key=""), handler)

        assert not result.success
        assert result.connectivity is None


class TestVerifyDump:

    def test_visits_dump(self, tmp_path: Path) -> None:
        path = tmp_path / "visits.json"
        path.write_text(json.dumps({"visits": [{"id": "a"}, {"id": "b"}]}))

        result = verify_dump(path)

        assert result.success
        assert result.kind == "visits"
        assert result.visits == 2

    def test_stats_dump(self, tmp_path: Path) -> None:
        path = tmp_path / "stats.json"
        path.write_text(json.dumps({
            "res": 0,
            "visits_timeseries": [{"id": "v", "name": "Human", "data": [[1700000000, 1]]}],
            "threats": [{"id": "t1"}, {"id": "t2"}],
        }))

        result = verify_dump(path)

        assert result.kind == "stats"
        assert result.series == {"visits_timeseries": 1, "threats": 2}

    def test_empty_visits_falls_through_to_stats(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.json"
        path.write_text('{"res": 0, "visits": []}')
        result = verify_dump(path)
        assert result.kind == "stats"
        assert result.series == {}

    def test_malformed_dump(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text('{"hits_timeseries": [{"data": [[1]]}]}')

        result = verify_dump(path)

        assert not result.success
        assert "timeseries point" in result.error

    def test_missing_file(self, tmp_path: Path) -> None:
        result = verify_dump(tmp_path / "absent.json")
        assert not result.success
        assert result.error
