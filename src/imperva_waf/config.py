"""
Configuration dataclasses for the Imperva WAF client.

This module defines the credential block handed to the client and the
logging configuration used by the command-line front-end.
"""

from dataclasses import dataclass, field
from typing import Optional

from .enums import ApiGeneration


DEFAULT_HOST = "https://my.imperva.com"

# One overall timeout shared by every call
REQUEST_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True)
class ClientConfig:
    """Credentials and endpoint selection for one client instance."""

    api_id: str
    api_key: str = field(repr=False)
    account_id: Optional[str] = None
    host: str = DEFAULT_HOST
    rules_api_generation: ApiGeneration = ApiGeneration.V3

    @property
    def base_url(self) -> str:
        """Host URL with the default applied and trailing slashes removed."""
        return (self.host or DEFAULT_HOST).rstrip("/")


@dataclass(frozen=True)
class LoggingConfig:
    """Logging and audit configuration."""

    level: str = "warn"
    audit_mode: bool = False
    audit_signing_key: Optional[str] = field(default=None, repr=False)
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass(frozen=True)
class AppConfig:
    """Everything the command-line front-end loads from disk or environment."""

    client: ClientConfig
    logging: LoggingConfig = field(default_factory=LoggingConfig)
