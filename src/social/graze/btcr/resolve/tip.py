"""Tip following: walk the spend chain of a BTCR transaction to the transaction that is currently authoritative."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from social.graze.btcr.bitcoin.connection import (
    BitcoinConnection,
    BtcrRecord,
    LookupUnavailable,
    TransactionRef,
)
from social.graze.btcr.resolve.exceptions import ResolutionFailed
from social.graze.btcr.resolve.txref import ChainLocator, txref

logger = logging.getLogger(__name__)

DEFAULT_MAX_HOPS = 1000


@dataclass(frozen=True)
class TipResult:
    """Outcome of following a spend chain.

    ``record`` is the BTCR record of the last transaction examined and is None when that transaction carries no
    BTCR data. ``spent_in`` lists every spending transaction visited, in order.
    """

    initial_locator: ChainLocator
    initial_ref: TransactionRef
    locator: ChainLocator
    ref: TransactionRef
    record: Optional[BtcrRecord]
    spent_in: List[TransactionRef] = field(default_factory=list)


async def follow_tip(
    connection: BitcoinConnection,
    initial_locator: ChainLocator,
    max_hops: int = DEFAULT_MAX_HOPS,
) -> TipResult:
    """
    Follow "spent by" pointers from the transaction at ``initial_locator`` until an unspent BTCR transaction or a
    transaction without BTCR data is reached.

    Raises:
        ResolutionFailed: A lookup failed, the spend chain revisits a transaction, or it is longer than
            ``max_hops`` spends
    """
    try:
        initial_ref = await connection.lookup_transaction(initial_locator)
    except LookupUnavailable as e:
        location = txref(initial_locator)
        raise ResolutionFailed(f"Cannot look up transaction for {location}: {e}", location) from e

    locator = initial_locator
    ref = initial_ref
    spent_in: List[TransactionRef] = []
    visited = {initial_ref.txid}

    while True:
        try:
            record = await connection.get_btcr_record(ref)
        except LookupUnavailable as e:
            raise ResolutionFailed(f"Cannot retrieve BTCR data for {ref.txid}: {e}", ref.txid) from e

        if record is None or record.spent_in is None:
            break

        next_ref = record.spent_in
        if next_ref.txid in visited:
            raise ResolutionFailed(
                f"Spend chain of {initial_ref.txid} loops back to {next_ref.txid}", next_ref.txid
            )
        if len(spent_in) >= max_hops:
            raise ResolutionFailed(
                f"Spend chain of {initial_ref.txid} is longer than {max_hops} transactions", next_ref.txid
            )

        logger.debug("Following spend of %s to %s", ref.txid, next_ref.txid)
        visited.add(next_ref.txid)
        spent_in.append(next_ref)
        ref = next_ref

        try:
            locator = await connection.lookup_block_location(ref)
        except LookupUnavailable as e:
            raise ResolutionFailed(f"Cannot look up block location of {ref.txid}: {e}", ref.txid) from e

    return TipResult(
        initial_locator=initial_locator,
        initial_ref=initial_ref,
        locator=locator,
        ref=ref,
        record=record,
        spent_in=spent_in,
    )
