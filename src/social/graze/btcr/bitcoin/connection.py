"""
Blockchain lookup capability used by the did:btcr resolver.

A BitcoinConnection answers three questions about the chain: which transaction sits at a block position, where a
transaction was mined, and what BTCR data a transaction carries. Backends (block explorer APIs, electrs) implement
the same semantics so the resolver never needs to know which one it is talking to.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional, Sequence

from aiohttp import ClientError, ClientSession
from pydantic import BaseModel, ConfigDict

from social.graze.btcr.resolve.txref import Chain, ChainLocator

logger = logging.getLogger(__name__)

OP_RETURN = 0x6A
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E

# Size in bytes of the little-endian length that follows each OP_PUSHDATA opcode.
PUSHDATA_LENGTH_SIZES = {OP_PUSHDATA1: 1, OP_PUSHDATA2: 2, OP_PUSHDATA4: 4}

# Compressed and uncompressed secp256k1 public keys.
PUBLIC_KEY_LENGTHS = (33, 65)


class LookupUnavailable(Exception):
    """The backend could not answer a lookup (network failure, unexpected response, unknown transaction)."""


class TransactionRef(BaseModel):
    """Reference to one transaction on a specific chain."""

    model_config = ConfigDict(frozen=True)

    chain: Chain
    txid: str


class BtcrRecord(BaseModel):
    """
    BTCR data carried by a transaction.

    Attributes:
        input_script_pub_key: Hex encoded public key that signed the transaction's first input
        continuation_uri: URI embedded in the OP_RETURN output, if any
        spent_in: Transaction that spent the BTCR output, None if the output is unspent (the tip)
    """

    model_config = ConfigDict(frozen=True)

    input_script_pub_key: str
    continuation_uri: Optional[str] = None
    spent_in: Optional[TransactionRef] = None


class BitcoinConnection(ABC):
    """Abstract base class for blockchain lookup backends."""

    @abstractmethod
    async def lookup_transaction(self, locator: ChainLocator) -> TransactionRef:
        """
        Find the transaction at a block position.

        Raises:
            LookupUnavailable: The backend failed or there is no transaction at that position
        """

    @abstractmethod
    async def lookup_block_location(self, ref: TransactionRef) -> ChainLocator:
        """
        Find the block position of a transaction.

        Raises:
            LookupUnavailable: The backend failed or the transaction is not confirmed
        """

    @abstractmethod
    async def get_btcr_record(self, ref: TransactionRef) -> Optional[BtcrRecord]:
        """
        Extract BTCR data from a transaction.

        Returns:
            The BTCR record, or None if the transaction exists but carries no BTCR data

        Raises:
            LookupUnavailable: The backend failed or the transaction does not exist
        """


class HttpBitcoinConnection(BitcoinConnection):
    """Base for backends reached over HTTP through a shared aiohttp session."""

    def __init__(self, session: ClientSession) -> None:
        self.session = session

    async def _get(self, url: str, params: Optional[dict] = None, as_json: bool = True) -> Any:
        try:
            async with self.session.get(url, params=params) as resp:
                if resp.status != 200:
                    raise LookupUnavailable(f"GET {url} returned HTTP {resp.status}")
                if as_json:
                    return await resp.json(content_type=None)
                return (await resp.text()).strip()
        except (ClientError, asyncio.TimeoutError, ValueError) as e:
            raise LookupUnavailable(f"GET {url} failed: {type(e).__name__}: {e}") from e


def script_pushes(script: bytes) -> List[bytes]:
    """Return the data pushed by a script, ignoring every non-push opcode.

    Parsing stops at the first push whose length prefix or data runs past the end of the script.
    """
    pushes: List[bytes] = []
    i = 0
    while i < len(script):
        opcode = script[i]
        i += 1
        if 0 < opcode < OP_PUSHDATA1:
            length = opcode
        elif opcode in PUSHDATA_LENGTH_SIZES:
            size = PUSHDATA_LENGTH_SIZES[opcode]
            if i + size > len(script):
                break
            length = int.from_bytes(script[i : i + size], "little")
            i += size
        else:
            continue
        if i + length > len(script):
            break
        pushes.append(script[i : i + length])
        i += length
    return pushes


def _from_hex(value: str) -> Optional[bytes]:
    try:
        return bytes.fromhex(value)
    except ValueError:
        logger.warning("Ignoring script data that is not hex: %r", value)
        return None


def input_public_key(script_sig: Optional[str], witness: Optional[Sequence[str]] = None) -> Optional[str]:
    """
    Recover the public key that signed an input.

    P2PKH inputs push ``<signature> <pubkey>`` in the scriptSig, P2WPKH inputs carry the same two items in the
    witness. The public key is the last item in either case.

    Returns:
        Hex encoded public key, or None if the input does not end with something shaped like a public key or is
        not valid hex
    """
    candidates: List[bytes] = []
    if witness:
        items = [_from_hex(item) for item in witness]
        if any(item is None for item in items):
            return None
        candidates = items
    elif script_sig:
        script = _from_hex(script_sig)
        if script is None:
            return None
        candidates = script_pushes(script)

    if len(candidates) < 2:
        return None
    if len(candidates[-1]) not in PUBLIC_KEY_LENGTHS:
        return None
    return candidates[-1].hex()


def is_op_return(script: Optional[str]) -> bool:
    return script is not None and script[:2].lower() == f"{OP_RETURN:02x}"


def continuation_uri(output_scripts: Iterable[Optional[str]]) -> Optional[str]:
    """Return the URI carried by the first OP_RETURN output, or None."""
    for script in output_scripts:
        if not is_op_return(script):
            continue
        raw = _from_hex(script)
        if raw is None:
            continue
        payload = b"".join(script_pushes(raw[1:]))
        if len(payload) == 0:
            continue
        try:
            return payload.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Ignoring OP_RETURN output that is not UTF-8: %s", script)
    return None
