"""
Bitcoin Lookup Backends

This package provides the blockchain lookups the did:btcr resolver depends on. Each backend implements the
BitcoinConnection interface over a different service:

- connection.py: BitcoinConnection interface, value types and shared script parsing
- blockcypher.py: BlockCypher REST API
- esplora.py: Esplora REST API (Blockstream, mempool.space, self-hosted electrs)

Backends are stateless apart from the shared aiohttp session they are given, so one instance serves every
concurrent resolution.
"""

from social.graze.btcr.bitcoin.connection import (
    BitcoinConnection,
    BtcrRecord,
    LookupUnavailable,
    TransactionRef,
)
from social.graze.btcr.bitcoin.blockcypher import BlockcypherApiBitcoinConnection
from social.graze.btcr.bitcoin.esplora import EsploraBitcoinConnection

__all__ = [
    "BitcoinConnection",
    "BtcrRecord",
    "LookupUnavailable",
    "TransactionRef",
    "BlockcypherApiBitcoinConnection",
    "EsploraBitcoinConnection",
]
