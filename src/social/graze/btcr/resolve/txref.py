"""BIP-136 txref encoding and decoding.

A did:btcr method-specific identifier is the data part of a txref: a bech32 string whose first character (the
magic) selects the network and whose remaining characters pack a block height, a transaction position and, for
the extended form, a transaction output index.
"""

from enum import Enum
from typing import Dict, List, Optional

import bech32
from pydantic import BaseModel, ConfigDict

from social.graze.btcr.resolve.exceptions import InvalidIdentifier


class Chain(str, Enum):
    """Bitcoin network a txref points into."""

    mainnet = "mainnet"
    testnet = "testnet"


TXREF_HRP_MAINNET = "tx"
TXREF_HRP_TESTNET = "txtest"

MAGIC_BTC_MAINNET = 3
MAGIC_BTC_MAINNET_EXTENDED = 4
MAGIC_BTC_TESTNET = 6
MAGIC_BTC_TESTNET_EXTENDED = 7

MAGIC_CHARS: Dict[str, int] = {
    bech32.CHARSET[MAGIC_BTC_MAINNET]: MAGIC_BTC_MAINNET,
    bech32.CHARSET[MAGIC_BTC_MAINNET_EXTENDED]: MAGIC_BTC_MAINNET_EXTENDED,
    bech32.CHARSET[MAGIC_BTC_TESTNET]: MAGIC_BTC_TESTNET,
    bech32.CHARSET[MAGIC_BTC_TESTNET_EXTENDED]: MAGIC_BTC_TESTNET_EXTENDED,
}

MAGIC_CHAINS: Dict[int, Chain] = {
    MAGIC_BTC_MAINNET: Chain.mainnet,
    MAGIC_BTC_MAINNET_EXTENDED: Chain.mainnet,
    MAGIC_BTC_TESTNET: Chain.testnet,
    MAGIC_BTC_TESTNET_EXTENDED: Chain.testnet,
}

EXTENDED_MAGICS = frozenset({MAGIC_BTC_MAINNET_EXTENDED, MAGIC_BTC_TESTNET_EXTENDED})

CHAIN_HRPS: Dict[Chain, str] = {
    Chain.mainnet: TXREF_HRP_MAINNET,
    Chain.testnet: TXREF_HRP_TESTNET,
}

MAX_BLOCK_HEIGHT = 0xFFFFFF
MAX_BLOCK_INDEX = 0x7FFF
MAX_TXO_INDEX = 0x7FFF

# Number of 5-bit data characters, excluding the 6 character checksum.
STANDARD_DATA_LENGTH = 9
EXTENDED_DATA_LENGTH = 12


class ChainLocator(BaseModel):
    """Position of a transaction in a block of a specific chain."""

    model_config = ConfigDict(frozen=True)

    chain: Chain
    block_height: int
    block_index: int
    txo_index: Optional[int] = None


def _strip(suffix: str) -> str:
    cleaned = suffix.strip().lower().replace("-", "").replace(":", "")
    for hrp in (TXREF_HRP_TESTNET, TXREF_HRP_MAINNET):
        cleaned = cleaned.removeprefix(f"{hrp}1")
    return cleaned


def decode(suffix: str) -> ChainLocator:
    """Decode a did:btcr method-specific identifier into a chain locator.

    Accepts the bare data part (``xyv2-xzpq-q63z-7p4``) as well as a full txref (``txtest1:xyv2-xzpq-q63z-7p4``).

    Raises:
        InvalidIdentifier: The magic character is unknown, the checksum does not verify or the payload has the
            wrong length or version.
    """
    cleaned = _strip(suffix)
    if len(cleaned) == 0:
        raise InvalidIdentifier(f"Empty txref in {suffix!r}")

    magic = MAGIC_CHARS.get(cleaned[0])
    if magic is None:
        raise InvalidIdentifier(f"Invalid magic byte in {suffix}")

    chain = MAGIC_CHAINS[magic]
    hrp, data = bech32.bech32_decode(f"{CHAIN_HRPS[chain]}1{cleaned}")
    if hrp is None or data is None:
        raise InvalidIdentifier(f"Invalid txref checksum in {suffix}")

    extended = magic in EXTENDED_MAGICS
    expected_length = EXTENDED_DATA_LENGTH if extended else STANDARD_DATA_LENGTH
    if len(data) != expected_length:
        raise InvalidIdentifier(
            f"Invalid txref length in {suffix}: expected {expected_length} data characters, got {len(data)}"
        )

    if data[1] & 0x1:
        raise InvalidIdentifier(f"Unsupported txref version in {suffix}")

    block_height = (
        (data[1] >> 1)
        | (data[2] << 4)
        | (data[3] << 9)
        | (data[4] << 14)
        | (data[5] << 19)
    )
    block_index = data[6] | (data[7] << 5) | (data[8] << 10)

    txo_index: Optional[int] = None
    if extended:
        txo_index = data[9] | (data[10] << 5) | (data[11] << 10)

    return ChainLocator(
        chain=chain,
        block_height=block_height,
        block_index=block_index,
        txo_index=txo_index,
    )


def _data_part(locator: ChainLocator) -> List[int]:
    if not 0 <= locator.block_height <= MAX_BLOCK_HEIGHT:
        raise ValueError(f"Block height out of range: {locator.block_height}")
    if not 0 <= locator.block_index <= MAX_BLOCK_INDEX:
        raise ValueError(f"Block index out of range: {locator.block_index}")

    extended = locator.txo_index is not None
    if locator.chain == Chain.mainnet:
        magic = MAGIC_BTC_MAINNET_EXTENDED if extended else MAGIC_BTC_MAINNET
    else:
        magic = MAGIC_BTC_TESTNET_EXTENDED if extended else MAGIC_BTC_TESTNET

    height = locator.block_height
    index = locator.block_index
    data = [
        magic,
        (height & 0xF) << 1,
        (height >> 4) & 0x1F,
        (height >> 9) & 0x1F,
        (height >> 14) & 0x1F,
        (height >> 19) & 0x1F,
        index & 0x1F,
        (index >> 5) & 0x1F,
        (index >> 10) & 0x1F,
    ]

    if extended:
        txo_index = locator.txo_index
        if not 0 <= txo_index <= MAX_TXO_INDEX:
            raise ValueError(f"Output index out of range: {txo_index}")
        data.extend([txo_index & 0x1F, (txo_index >> 5) & 0x1F, (txo_index >> 10) & 0x1F])

    return data


def encode(locator: ChainLocator) -> str:
    """Encode a chain locator as a did:btcr method-specific identifier, e.g. ``xyv2-xzpq-q63z-7p4``."""
    hrp = CHAIN_HRPS[locator.chain]
    encoded = bech32.bech32_encode(hrp, _data_part(locator))
    payload = encoded[len(hrp) + 1 :]
    return "-".join(payload[i : i + 4] for i in range(0, len(payload), 4))


def txref(locator: ChainLocator) -> str:
    """Full txref form of a chain locator, e.g. ``txtest1:xyv2-xzpq-q63z-7p4``."""
    return f"{CHAIN_HRPS[locator.chain]}1:{encode(locator)}"
