"""Selection of the blockchain backend from configuration."""

import logging
from typing import Callable, Dict

from aiohttp import ClientSession

from social.graze.btcr.app.config import Settings
from social.graze.btcr.bitcoin.blockcypher import BlockcypherApiBitcoinConnection
from social.graze.btcr.bitcoin.connection import BitcoinConnection
from social.graze.btcr.bitcoin.esplora import EsploraBitcoinConnection

logger = logging.getLogger(__name__)

BitcoinConnectionFactory = Callable[[Settings, ClientSession], BitcoinConnection]


def _blockcypher(settings: Settings, session: ClientSession) -> BitcoinConnection:
    return BlockcypherApiBitcoinConnection(
        session,
        api_url=settings.blockcypher_api_url,
        token=settings.blockcypher_token,
    )


def _esplora(settings: Settings, session: ClientSession) -> BitcoinConnection:
    return EsploraBitcoinConnection(
        session,
        url_mainnet=settings.esplora_url_mainnet,
        url_testnet=settings.esplora_url_testnet,
    )


BITCOIN_CONNECTIONS: Dict[str, BitcoinConnectionFactory] = {
    "blockcypherapi": _blockcypher,
    "esplora": _esplora,
}


def create_bitcoin_connection(settings: Settings, session: ClientSession) -> BitcoinConnection:
    """
    Create the blockchain backend named by ``settings.bitcoin_connection``.

    Raises:
        ValueError: The backend name is not known
    """
    factory = BITCOIN_CONNECTIONS.get(settings.bitcoin_connection)
    if factory is None:
        raise ValueError(
            f"Invalid bitcoin connection: {settings.bitcoin_connection}. "
            f"Supported connections: {', '.join(sorted(BITCOIN_CONNECTIONS))}"
        )
    logger.info("Using bitcoin connection %s", settings.bitcoin_connection)
    return factory(settings, session)
