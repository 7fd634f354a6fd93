"""
Client facade composing the transport and the resource modules.

Usage:
    async with create_client(config) as client:
        sites = await client.list_sites()
"""

from typing import Optional, Sequence, Union

import httpx

from .audit_logger import AuditLogger
from .config import ClientConfig
from .enums import ApiGeneration, SiteStatusTest
from .models import (
    ApiResult,
    Identifier,
    ListSitesOptions,
    Rule,
    Site,
    StatsOptions,
    StatsResponse,
    Visit,
    VisitOptions,
)
from .rules import RulesResource
from .sessions import SessionsResource
from .sites import SitesResource
from .traffic import TrafficResource
from .transport import Transport


class ImpervaClient:
    """
    Imperva Cloud WAF API client.

    Holds no state besides the immutable configuration and one reusable
    HTTP connection pool, so independent calls may run concurrently as
    separate tasks.
    """

    def __init__(
        self,
        config: ClientConfig,
        logger: Optional[AuditLogger] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._transport = Transport(config, logger=logger, http_transport=http_transport)
        self.sites = SitesResource(self._transport, config.account_id, logger)
        self.rules = RulesResource(self._transport, config.rules_api_generation, logger)
        self.sessions = SessionsResource(self._transport, config.account_id, logger)
        self.traffic = TrafficResource(self._transport, logger)

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def rules_api_generation(self) -> ApiGeneration:
        return self.rules.generation

    async def list_sites(self, options: Optional[ListSitesOptions] = None) -> tuple[Site, ...]:
        return await self.sites.list_sites(options)

    async def get_site_status(
        self,
        site_id: int,
        tests: Union[str, Sequence[Union[str, SiteStatusTest]], None] = None,
    ) -> Site:
        return await self.sites.get_site_status(site_id, tests)

    async def create_rule(self, site_id: int, rule: Rule) -> Rule:
        return await self.rules.create_rule(site_id, rule)

    async def get_rule(self, site_id: int, rule_id: Identifier) -> Rule:
        return await self.rules.get_rule(site_id, rule_id)

    async def update_rule(self, site_id: int, rule_id: Identifier, rule: Rule) -> Rule:
        return await self.rules.update_rule(site_id, rule_id, rule)

    async def delete_rule(self, site_id: int, rule_id: Identifier) -> None:
        await self.rules.delete_rule(site_id, rule_id)

    async def list_rules(self, site_id: int) -> tuple[Rule, ...]:
        return await self.rules.list_rules(site_id)

    async def release_session(self, site_id: int, session_id: str) -> ApiResult:
        return await self.sessions.release_session(site_id, session_id)

    async def get_visits(
        self,
        site_id: int,
        options: Optional[VisitOptions] = None,
    ) -> tuple[Visit, ...]:
        return await self.traffic.get_visits(site_id, options)

    async def get_stats(
        self,
        site_id: int,
        options: Optional[StatsOptions] = None,
    ) -> StatsResponse:
        return await self.traffic.get_stats(site_id, options)

    async def close(self) -> None:
        await self._transport.close()

    async def __aenter__(self) -> "ImpervaClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def create_client(
    config: ClientConfig,
    logger: Optional[AuditLogger] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ImpervaClient:
    """Construct a client from loaded configuration."""
    return ImpervaClient(config, logger=logger, http_transport=http_transport)
