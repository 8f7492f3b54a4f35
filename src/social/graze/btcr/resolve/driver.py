"""did:btcr resolution.

Resolves ``did:btcr:<txref>`` identifiers by decoding the txref, following the spend chain of the referenced
transaction to its tip, fetching the continuation document the tip points at, and assembling the DID document
with metadata describing the path that was taken.
"""

import logging
import re
from typing import Optional

from aiohttp import ClientSession

from social.graze.btcr.bitcoin.connection import BitcoinConnection
from social.graze.btcr.resolve import txref
from social.graze.btcr.resolve.continuation import fetch_continuation
from social.graze.btcr.resolve.document import (
    DIDDocument,
    ResolveResult,
    build_method_metadata,
    resolve_document,
)
from social.graze.btcr.resolve.tip import DEFAULT_MAX_HOPS, follow_tip

logger = logging.getLogger(__name__)

DID_BTCR_PATTERN = re.compile(r"^did:btcr:(\S*)$")


def did_predicate(value: Optional[str]) -> bool:
    """Check if value is a did:btcr identifier."""
    return value is not None and DID_BTCR_PATTERN.match(value) is not None


class BtcrResolver:
    """
    Resolver for the did:btcr method.

    Holds the blockchain backend and the HTTP session used for continuation documents. Both are shared by every
    resolution running on the instance and nothing else is kept between calls.
    """

    def __init__(
        self,
        connection: BitcoinConnection,
        session: ClientSession,
        max_hops: int = DEFAULT_MAX_HOPS,
    ) -> None:
        self.connection = connection
        self.session = session
        self.max_hops = max_hops

    async def resolve(self, identifier: str) -> Optional[ResolveResult]:
        """
        Resolve a did:btcr identifier.

        Args:
            identifier: DID to resolve

        Returns:
            The resolution result, or None if the identifier is not a did:btcr DID. The result's document is None
            when the identifier has been deactivated.

        Raises:
            InvalidIdentifier: The txref cannot be decoded
            ResolutionFailed: A blockchain lookup failed
            ContinuationUnreachable: The continuation document could not be fetched
            ContinuationMalformed: The continuation document is not a DID document
        """
        match = DID_BTCR_PATTERN.match(identifier)
        if match is None:
            return None

        locator = txref.decode(match.group(1))
        tip = await follow_tip(self.connection, locator, self.max_hops)

        logger.info(
            "Retrieved BTCR data for %s (%s on chain %s): %s",
            txref.txref(locator),
            tip.ref.txid,
            tip.locator.chain.value,
            tip.record,
        )

        continuation: Optional[DIDDocument] = None
        if tip.record is not None and tip.record.continuation_uri is not None:
            continuation = await fetch_continuation(self.session, tip.record.continuation_uri)
            logger.info(
                "Retrieved DID document continuation for %s (%s)",
                txref.txref(locator),
                tip.record.continuation_uri,
            )

        return ResolveResult(
            did_document=resolve_document(identifier, tip, continuation),
            method_metadata=build_method_metadata(tip, continuation),
        )
