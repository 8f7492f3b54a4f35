"""
BlockCypher API backend.

Uses the public BlockCypher REST API, which reports the spending transaction of every output (``spent_by``) and
so needs no local index to follow a BTCR spend chain.
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

BLOCKCYPHER_API_URL = "https://api.blockcypher.com/v1"

BLOCKCYPHER_CHAINS: Dict[Chain, str] = {
    Chain.mainnet: "btc/main",
    Chain.testnet: "btc/test3",
}


class BlockcypherApiBitcoinConnection(HttpBitcoinConnection):
    def __init__(
        self,
        session: ClientSession,
        api_url: str = BLOCKCYPHER_API_URL,
        token: Optional[str] = None,
    ) -> None:
        super().__init__(session)
        self.api_url = api_url.rstrip("/")
        self.token = token

    def _url(self, chain: Chain, path: str) -> str:
        return f"{self.api_url}/{BLOCKCYPHER_CHAINS[chain]}/{path}"

    def _params(self, **params: Any) -> Dict[str, Any]:
        if self.token is not None:
            params["token"] = self.token
        return params

    async def _get_transaction(self, ref: TransactionRef) -> Dict[str, Any]:
        body = await self._get(
            self._url(ref.chain, f"txs/{ref.txid}"), params=self._params(limit=50)
        )
        if not isinstance(body, dict):
            raise LookupUnavailable(f"Unexpected transaction response for {ref.txid}")
        return body

    async def lookup_transaction(self, locator: ChainLocator) -> TransactionRef:
        body = await self._get(
            self._url(locator.chain, f"blocks/{locator.block_height}"),
            params=self._params(txstart=locator.block_index, limit=1),
        )
        txids = body.get("txids") if isinstance(body, dict) else None
        if not txids:
            raise LookupUnavailable(
                f"No transaction at block {locator.block_height} index {locator.block_index} on {locator.chain.value}"
            )
        return TransactionRef(chain=locator.chain, txid=txids[0])

    async def lookup_block_location(self, ref: TransactionRef) -> ChainLocator:
        body = await self._get_transaction(ref)
        block_height = body.get("block_height", -1)
        block_index = body.get("block_index")
        if block_height is None or block_height < 0 or block_index is None:
            raise LookupUnavailable(f"Transaction {ref.txid} is not confirmed")
        return ChainLocator(
            chain=ref.chain, block_height=block_height, block_index=block_index
        )

    async def get_btcr_record(self, ref: TransactionRef) -> Optional[BtcrRecord]:
        body = await self._get_transaction(ref)

        inputs = body.get("inputs") or []
        outputs = body.get("outputs") or []
        if len(inputs) == 0:
            return None

        first_input = inputs[0]
        public_key = input_public_key(first_input.get("script"), first_input.get("witness"))
        if public_key is None:
            logger.debug("Transaction %s has no recoverable input public key", ref.txid)
            return None

        spent_in: Optional[TransactionRef] = None
        for output in outputs:
            if is_op_return(output.get("script")):
                continue
            spent_by = output.get("spent_by")
            if spent_by:
                spent_in = TransactionRef(chain=ref.chain, txid=spent_by)
            break

        return BtcrRecord(
            input_script_pub_key=public_key,
            continuation_uri=continuation_uri(output.get("script") for output in outputs),
            spent_in=spent_in,
        )
