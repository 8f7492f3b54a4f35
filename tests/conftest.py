"""
Shared test configuration and fixtures for the did:btcr driver tests.

Provides an in-memory blockchain backend and a factory for mocked aiohttp responses, used across the resolver,
backend and application tests.
"""

from typing import Any, Dict, List, Optional, Set
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import ClientResponse, ClientSession

from social.graze.btcr.bitcoin.connection import (
    BitcoinConnection,
    BtcrRecord,
    LookupUnavailable,
    TransactionRef,
)
from social.graze.btcr.resolve.txref import Chain, ChainLocator


SIGNATURE = "30" * 71
PUBLIC_KEY = "02" + "ab" * 32
SCRIPT_SIG = "47" + SIGNATURE + "21" + PUBLIC_KEY
P2PKH_SCRIPT = "76a914" + "00" * 20 + "88ac"
CONTINUATION_URI = "https://example.com/ddo.jsonld"


def op_return_script(payload: str) -> str:
    data = payload.encode("utf-8")
    return "6a" + f"{len(data):02x}" + data.hex()


def make_response(
    status: int = 200,
    json_body: Any = None,
    text_body: Optional[str] = None,
    json_error: Optional[Exception] = None,
) -> MagicMock:
    """Build an object usable as ``async with session.get(...) as resp``."""
    response = AsyncMock(spec=ClientResponse)
    response.status = status
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_body
    response.text.return_value = text_body

    context = MagicMock()
    context.__aenter__.return_value = response
    context.__aexit__.return_value = False
    return context


class FakeBitcoinConnection(BitcoinConnection):
    """In-memory chain: transactions keyed by txid, each with a block location and an optional BTCR record."""

    def __init__(self) -> None:
        self.locations: Dict[str, ChainLocator] = {}
        self.records: Dict[str, Optional[BtcrRecord]] = {}
        self.failing: Set[str] = set()
        self.calls: List[str] = []

    def add(
        self,
        txid: str,
        block_height: int,
        block_index: int,
        record: Optional[BtcrRecord] = None,
        chain: Chain = Chain.testnet,
    ) -> ChainLocator:
        locator = ChainLocator(chain=chain, block_height=block_height, block_index=block_index)
        self.locations[txid] = locator
        self.records[txid] = record
        return locator

    async def lookup_transaction(self, locator: ChainLocator) -> TransactionRef:
        self.calls.append(f"lookup_transaction:{locator.block_height}:{locator.block_index}")
        for txid, known in self.locations.items():
            if (known.chain, known.block_height, known.block_index) == (
                locator.chain,
                locator.block_height,
                locator.block_index,
            ):
                if txid in self.failing:
                    raise LookupUnavailable(f"backend down for {txid}")
                return TransactionRef(chain=known.chain, txid=txid)
        raise LookupUnavailable("no transaction at that position")

    async def lookup_block_location(self, ref: TransactionRef) -> ChainLocator:
        self.calls.append(f"lookup_block_location:{ref.txid}")
        if ref.txid in self.failing or ref.txid not in self.locations:
            raise LookupUnavailable(f"backend down for {ref.txid}")
        return self.locations[ref.txid]

    async def get_btcr_record(self, ref: TransactionRef) -> Optional[BtcrRecord]:
        self.calls.append(f"get_btcr_record:{ref.txid}")
        if ref.txid in self.failing:
            raise LookupUnavailable(f"backend down for {ref.txid}")
        return self.records.get(ref.txid)


def btcr_record(
    spent_in: Optional[str] = None,
    continuation_uri: Optional[str] = None,
    chain: Chain = Chain.testnet,
) -> BtcrRecord:
    return BtcrRecord(
        input_script_pub_key=PUBLIC_KEY,
        continuation_uri=continuation_uri,
        spent_in=TransactionRef(chain=chain, txid=spent_in) if spent_in else None,
    )


@pytest.fixture
def fake_connection() -> FakeBitcoinConnection:
    return FakeBitcoinConnection()


@pytest.fixture
def mock_session() -> AsyncMock:
    return AsyncMock(spec=ClientSession)
