"""
Esplora backend.

Talks to an Esplora REST API: Blockstream's or mempool.space's public instances, or a self-hosted electrs next to
a full node. Output spend status comes from the ``/tx/{txid}/outspend/{vout}`` endpoint.
"""

import logging
from typing import Any, Dict, Optional

from aiohttp import ClientSession

from social.graze.btcr.bitcoin.connection import (
    BtcrRecord,
    HttpBitcoinConnection,
    LookupUnavailable,
    TransactionRef,
    continuation_uri,
    input_public_key,
    is_op_return,
)
from social.graze.btcr.resolve.txref import Chain, ChainLocator

logger = logging.getLogger(__name__)

ESPLORA_URL_MAINNET = "https://blockstream.info/api"
ESPLORA_URL_TESTNET = "https://blockstream.info/testnet/api"


class EsploraBitcoinConnection(HttpBitcoinConnection):
    def __init__(
        self,
        session: ClientSession,
        url_mainnet: str = ESPLORA_URL_MAINNET,
        url_testnet: str = ESPLORA_URL_TESTNET,
    ) -> None:
        super().__init__(session)
        self.urls: Dict[Chain, str] = {
            Chain.mainnet: url_mainnet.rstrip("/"),
            Chain.testnet: url_testnet.rstrip("/"),
        }

    def _url(self, chain: Chain, path: str) -> str:
        return f"{self.urls[chain]}/{path}"

    async def lookup_transaction(self, locator: ChainLocator) -> TransactionRef:
        block_hash = await self._get(
            self._url(locator.chain, f"block-height/{locator.block_height}"),
            as_json=False,
        )
        txid = await self._get(
            self._url(locator.chain, f"block/{block_hash}/txid/{locator.block_index}"),
            as_json=False,
        )
        if not txid:
            raise LookupUnavailable(
                f"No transaction at block {locator.block_height} index {locator.block_index} on {locator.chain.value}"
            )
        return TransactionRef(chain=locator.chain, txid=txid)

    async def lookup_block_location(self, ref: TransactionRef) -> ChainLocator:
        status = await self._get(self._url(ref.chain, f"tx/{ref.txid}/status"))
        if not isinstance(status, dict) or not status.get("confirmed"):
            raise LookupUnavailable(f"Transaction {ref.txid} is not confirmed")

        txids = await self._get(self._url(ref.chain, f"block/{status['block_hash']}/txids"))
        if not isinstance(txids, list) or ref.txid not in txids:
            raise LookupUnavailable(
                f"Transaction {ref.txid} not found in block {status['block_hash']}"
            )
        return ChainLocator(
            chain=ref.chain,
            block_height=status["block_height"],
            block_index=txids.index(ref.txid),
        )

    async def get_btcr_record(self, ref: TransactionRef) -> Optional[BtcrRecord]:
        body: Any = await self._get(self._url(ref.chain, f"tx/{ref.txid}"))
        if not isinstance(body, dict):
            raise LookupUnavailable(f"Unexpected transaction response for {ref.txid}")

        vin = body.get("vin") or []
        vout = body.get("vout") or []
        if len(vin) == 0 or vin[0].get("is_coinbase"):
            return None

        public_key = input_public_key(vin[0].get("scriptsig"), vin[0].get("witness"))
        if public_key is None:
            logger.debug("Transaction %s has no recoverable input public key", ref.txid)
            return None

        spent_in: Optional[TransactionRef] = None
        for n, output in enumerate(vout):
            if is_op_return(output.get("scriptpubkey")):
                continue
            outspend = await self._get(self._url(ref.chain, f"tx/{ref.txid}/outspend/{n}"))
            if isinstance(outspend, dict) and outspend.get("spent") and outspend.get("txid"):
                spent_in = TransactionRef(chain=ref.chain, txid=outspend["txid"])
            break

        return BtcrRecord(
            input_script_pub_key=public_key,
            continuation_uri=continuation_uri(output.get("scriptpubkey") for output in vout),
            spent_in=spent_in,
        )
