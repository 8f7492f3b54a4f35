"""
Configuration Module for the did:btcr Driver

This module defines the configuration system for the did:btcr driver service, using Pydantic for settings
validation and dependency injection through AppKeys.

The Settings class is loaded from environment variables with defaults suitable for development. The environment
variable names used by the Universal Resolver's did:btcr driver are accepted as aliases, so existing deployments
keep working. All application components access settings and shared resources through typed AppKeys.

Key configuration areas include:
- Service networking and debugging
- Blockchain backend selection and connection parameters
- Resolution limits and HTTP timeouts
- Monitoring and error reporting
"""

import asyncio
import logging
from typing import Final, Optional

from aiohttp import ClientSession, web
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

from social.graze.btcr.app.metrics import MetricsClient
from social.graze.btcr.bitcoin.blockcypher import BLOCKCYPHER_API_URL
from social.graze.btcr.bitcoin.connection import BitcoinConnection
from social.graze.btcr.bitcoin.esplora import ESPLORA_URL_MAINNET, ESPLORA_URL_TESTNET
from social.graze.btcr.model.health import HealthGauge
from social.graze.btcr.resolve.driver import BtcrResolver
from social.graze.btcr.resolve.tip import DEFAULT_MAX_HOPS

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings for the did:btcr driver.

    Environment variables are mapped to settings fields, with aliases for the variable names of the Universal
    Resolver driver. For example, the backend can be selected with either BITCOIN_CONNECTION or
    uniresolver_driver_did_btcr_bitcoinConnection.
    """

    debug: bool = False
    """
    Enable debug mode for verbose logging of outgoing requests.
    Set with DEBUG=true environment variable.
    """

    http_port: int = Field(alias="port", default=8080)
    """
    HTTP port for the service to listen on.
    Set with PORT environment variable.
    """

    sentry_dsn: Optional[str] = None
    """
    Sentry DSN for error reporting. Optional, no error reporting if not set.
    Set with SENTRY_DSN environment variable.
    """

    bitcoin_connection: str = Field(
        "blockcypherapi",
        validation_alias=AliasChoices(
            "bitcoin_connection", "uniresolver_driver_did_btcr_bitcoinConnection"
        ),
    )
    """
    Blockchain backend used for lookups: 'blockcypherapi' or 'esplora'.
    Set with BITCOIN_CONNECTION or uniresolver_driver_did_btcr_bitcoinConnection.
    """

    blockcypher_api_url: str = BLOCKCYPHER_API_URL
    """
    Base URL of the BlockCypher API.
    Set with BLOCKCYPHER_API_URL environment variable.
    """

    blockcypher_token: Optional[str] = None
    """
    BlockCypher API token. Optional, anonymous rate limits apply if not set.
    Set with BLOCKCYPHER_TOKEN environment variable.
    """

    esplora_url_mainnet: str = Field(
        ESPLORA_URL_MAINNET,
        validation_alias=AliasChoices(
            "esplora_url_mainnet", "uniresolver_driver_did_btcr_rpcUrlMainnet"
        ),
    )
    """
    Esplora API base URL for mainnet lookups.
    Set with ESPLORA_URL_MAINNET or uniresolver_driver_did_btcr_rpcUrlMainnet.
    """

    esplora_url_testnet: str = Field(
        ESPLORA_URL_TESTNET,
        validation_alias=AliasChoices(
            "esplora_url_testnet", "uniresolver_driver_did_btcr_rpcUrlTestnet"
        ),
    )
    """
    Esplora API base URL for testnet lookups.
    Set with ESPLORA_URL_TESTNET or uniresolver_driver_did_btcr_rpcUrlTestnet.
    """

    http_timeout: float = 30.0
    """
    Total timeout in seconds for each outgoing HTTP request (backend lookups and continuation documents).
    Set with HTTP_TIMEOUT environment variable.
    """

    max_spend_hops: int = DEFAULT_MAX_HOPS
    """
    Maximum number of spends followed before a resolution is abandoned.
    Set with MAX_SPEND_HOPS environment variable.
    """

    metrics_backend: str = "telegraf"
    """
    Metrics backend: 'telegraf' or 'none'.
    Set with METRICS_BACKEND environment variable.
    """

    statsd_host: str = Field(alias="TELEGRAF_HOST", default="telegraf")
    """
    StatsD/Telegraf host for metrics collection.
    Set with TELEGRAF_HOST environment variable.
    """

    statsd_port: int = Field(alias="TELEGRAF_PORT", default=8125)
    """
    StatsD/Telegraf port for metrics collection.
    Set with TELEGRAF_PORT environment variable.
    """

    @field_validator("bitcoin_connection", "metrics_backend", mode="before")
    @classmethod
    def normalize_backend_name(cls, v) -> str:
        """Backend names are matched case-insensitively."""
        if isinstance(v, str):
            return v.strip().lower()
        raise ValueError("backend name must be a string")

    @field_validator("max_spend_hops")
    @classmethod
    def validate_max_spend_hops(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_spend_hops must not be negative")
        return v

    def properties(self) -> dict:
        """Driver properties safe to expose publicly (no credentials)."""
        return {
            "bitcoinConnection": self.bitcoin_connection,
            "blockcypherApiUrl": self.blockcypher_api_url,
            "esploraUrlMainnet": self.esplora_url_mainnet,
            "esploraUrlTestnet": self.esplora_url_testnet,
            "maxSpendHops": self.max_spend_hops,
        }


# Application context keys for dependency injection
SettingsAppKey: Final = web.AppKey("settings", Settings)
"""AppKey for accessing the application settings"""

SessionAppKey: Final = web.AppKey("http_session", ClientSession)
"""AppKey for accessing the shared aiohttp client session"""

BitcoinConnectionAppKey: Final = web.AppKey("bitcoin_connection", BitcoinConnection)
"""AppKey for accessing the configured blockchain backend"""

ResolverAppKey: Final = web.AppKey("resolver", BtcrResolver)
"""AppKey for accessing the did:btcr resolver"""

HealthGaugeAppKey: Final = web.AppKey("health_gauge", HealthGauge)
"""AppKey for accessing the health monitoring gauge"""

MetricsClientAppKey: Final = web.AppKey("metrics_client", MetricsClient)
"""AppKey for accessing the metrics client"""

TickHealthTaskAppKey: Final = web.AppKey("tick_health_task", asyncio.Task[None])
"""AppKey for the background task that recovers the health gauge"""
