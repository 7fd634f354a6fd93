"""
Self-test for the Imperva WAF client.

Two checks are offered:

- SelfTest validates the configuration and checks connectivity with a
  one-item site listing, so credentials can be verified before real use.
- verify_dump checks offline that a saved JSON response body parses as a
  visits list or, failing that, as a stats response.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx

from .audit_logger import AuditLogger
from .client import create_client
from .config import ClientConfig
from .enums import ApiGeneration, StatsCategory
from .exceptions import ImpervaError
from .models import ListSitesOptions
from .traffic import parse_stats, parse_visits


@dataclass
class ConfigValidationResult:
    """Result of configuration validation."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class ConnectivityResult:
    """Result of the authenticated connectivity check."""

    success: bool
    response_time_ms: float
    sites_visible: int = 0
    error: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class SelfTestResult:
    """Complete self-test result."""

    success: bool
    config_validation: ConfigValidationResult
    connectivity: Optional[ConnectivityResult] = None
    total_duration_ms: float = 0.0


@dataclass
class DumpVerification:
    """Outcome of parsing a saved response body."""

    path: str
    kind: Optional[str]  # 'visits', 'stats' or None
    visits: int = 0
    series: dict[str, int] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.kind is not None


class SelfTest:
    """
    Startup self-test for the client.

    Performs:
    1. Configuration validation
    2. An authenticated list-sites call with page_size=1
    """

    def __init__(
        self,
        config: ClientConfig,
        logger: Optional[AuditLogger] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._logger = logger
        self._http_transport = http_transport

    async def run(self) -> SelfTestResult:
        start_time = time.perf_counter()

        config_result = self.validate_config()
        if not config_result.valid:
            return SelfTestResult(
                success=False,
                config_validation=config_result,
                total_duration_ms=self._elapsed_ms(start_time),
            )

        connectivity = await self._test_connectivity()
        return SelfTestResult(
            success=connectivity.success,
            config_validation=config_result,
            connectivity=connectivity,
            total_duration_ms=self._elapsed_ms(start_time),
        )

    def validate_config(self) -> ConfigValidationResult:
        """
        Validate the client configuration.

        Checks:
        - API id and API key are present
        - The host uses HTTPS
        - The rules API generation is known
        - An account id is set (warning only)
        """
        errors: list[str] = []
        warnings: list[str] = []

        if not self._config.api_id:
            errors.append("API id is not configured")
        if not self._config.api_key:
            errors.append("API key is not configured")

        parsed = urlparse(self._config.base_url)
        if parsed.scheme.lower() != "https":
            errors.append(f"Host must use HTTPS: {self._config.base_url}")
        if not parsed.netloc:
            errors.append(f"Host has no network location: {self._config.base_url}")
        if not isinstance(self._config.rules_api_generation, ApiGeneration):
            errors.append(f"Unknown rules API generation: {self._config.rules_api_generation!r}")

        if not self._config.account_id:
            warnings.append("No account id configured - the API key's default account is used")

        return ConfigValidationResult(
            valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )

    async def _test_connectivity(self) -> ConnectivityResult:
        start_time = time.perf_counter()
        client = create_client(self._config, self._logger, self._http_transport)
        try:
            sites = await client.list_sites(ListSitesOptions(page_size=1, page_num=0))
        except ImpervaError as e:
            return ConnectivityResult(
                success=False,
                response_time_ms=self._elapsed_ms(start_time),
                error=e.message,
                error_code=e.code,
            )
        finally:
            await client.close()

        return ConnectivityResult(
            success=True,
            response_time_ms=self._elapsed_ms(start_time),
            sites_visible=len(sites),
        )

    def _elapsed_ms(self, start_time: float) -> float:
        return (time.perf_counter() - start_time) * 1000

    def print_results(self, result: SelfTestResult) -> None:
        print("Imperva WAF client self-test")
        print("=" * 60)

        print("\nConfiguration:")
        if result.config_validation.valid:
            print("  ✓ Configuration valid")
        else:
            print("  ✗ Configuration invalid")
            for error in result.config_validation.errors:
                print(f"    - {error}")
        for warning in result.config_validation.warnings:
            print(f"    ! {warning}")

        if result.connectivity is not None:
            check = result.connectivity
            status = "✓" if check.success else "✗"
            print("\nConnectivity:")
            print(f"  {status} {self._config.base_url} ({check.response_time_ms:.0f}ms)")
            if check.error:
                print(f"      Error [{check.error_code}]: {check.error}")

        print(f"\n{'-' * 60}")
        print("✓ Self-test passed" if result.success else "✗ Self-test failed")
        print(f"  Duration: {result.total_duration_ms:.0f}ms")


def verify_dump(path: Path) -> DumpVerification:
    """
    Check whether a saved response body parses as visits or as stats.

    Visits are tried first and only match when at least one visit decodes.
    """
    try:
        raw = path.read_bytes()
    except OSError as e:
        return DumpVerification(path=str(path), kind=None, error=str(e))

    try:
        visits = parse_visits(raw)
    except ImpervaError:
        visits = ()
    if visits:
        return DumpVerification(path=str(path), kind="visits", visits=len(visits))

    try:
        stats = parse_stats(raw)
    except ImpervaError as e:
        return DumpVerification(path=str(path), kind=None, error=e.message)

    series = {
        category.value: len(getattr(stats, category.value))
        for category in StatsCategory
        if getattr(stats, category.value)
    }
    return DumpVerification(path=str(path), kind="stats", series=series)


async def run_self_test(
    config: ClientConfig,
    logger: Optional[AuditLogger] = None,
    print_output: bool = True,
) -> SelfTestResult:
    """Run the self-test and optionally print the results."""
    self_test = SelfTest(config, logger)
    result = await self_test.run()

    if print_output:
        self_test.print_results(result)

    return result
