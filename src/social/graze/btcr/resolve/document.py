"""DID document model and assembly of did:btcr resolution results.

The document model follows the DID document shape the BTCR method was specified against (``publicKey``,
``authentication`` and ``service`` arrays). Members this module does not know about are kept as-is so that a
continuation document survives the round trip through the model.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from social.graze.btcr.bitcoin.connection import BtcrRecord, TransactionRef
from social.graze.btcr.resolve.tip import TipResult
from social.graze.btcr.resolve.txref import Chain, txref

DID_CONTEXT = "https://w3id.org/did/v0.11"

PUBLIC_KEY_TYPE = "EcdsaSecp256k1VerificationKey2019"
AUTHENTICATION_TYPE = "EcdsaSecp256k1SignatureAuthentication2019"


class PublicKey(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[str] = None
    type: Union[str, List[str]]
    controller: Optional[str] = None
    public_key_hex: Optional[str] = Field(default=None, alias="publicKeyHex")
    public_key_base58: Optional[str] = Field(default=None, alias="publicKeyBase58")
    public_key_base64: Optional[str] = Field(default=None, alias="publicKeyBase64")
    public_key_pem: Optional[str] = Field(default=None, alias="publicKeyPem")


class Authentication(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[str] = None
    type: Optional[Union[str, List[str]]] = None
    public_key: Optional[Union[str, List[str]]] = Field(default=None, alias="publicKey")


class Service(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[str] = None
    type: Union[str, List[str]]
    service_endpoint: Union[str, Dict[str, Any], List[Any]] = Field(alias="serviceEndpoint")


class DIDDocument(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    context: Union[str, List[Any]] = Field(default=DID_CONTEXT, alias="@context")
    id: Optional[str] = None
    public_keys: List[PublicKey] = Field(default_factory=list, alias="publicKey")
    authentications: List[Union[str, Authentication]] = Field(
        default_factory=list, alias="authentication"
    )
    services: List[Service] = Field(default_factory=list, alias="service")

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class MethodMetadata(BaseModel):
    """
    Provenance of a did:btcr resolution.

    Reports where the spend chain started and ended and every transaction in between, and is returned even when
    the identifier turned out to be deactivated.
    """

    model_config = ConfigDict(populate_by_name=True)

    input_script_pub_key: Optional[str] = Field(default=None, alias="inputScriptPubKey")
    continuation_uri: Optional[str] = Field(default=None, alias="continuationUri")
    continuation: Optional[DIDDocument] = None
    chain: Optional[Chain] = None
    initial_block_height: Optional[int] = Field(default=None, alias="initialBlockHeight")
    initial_block_index: Optional[int] = Field(default=None, alias="initialBlockIndex")
    initial_txid: Optional[TransactionRef] = Field(default=None, alias="initialTxid")
    initial_txref: Optional[str] = Field(default=None, alias="initialTxref")
    block_height: Optional[int] = Field(default=None, alias="blockHeight")
    block_index: Optional[int] = Field(default=None, alias="blockIndex")
    txid: Optional[TransactionRef] = None
    txref: Optional[str] = None
    spent_in_chain_and_txids: List[TransactionRef] = Field(
        default_factory=list, alias="spentInChainAndTxids"
    )


class ResolveResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    did_document: Optional[DIDDocument] = Field(default=None, alias="didDocument")
    method_metadata: MethodMetadata = Field(alias="methodMetadata")

    def to_json(self) -> Dict[str, Any]:
        return {
            "didDocument": (
                self.did_document.to_json() if self.did_document is not None else None
            ),
            "methodMetadata": self.method_metadata.model_dump(
                mode="json", by_alias=True, exclude_none=True
            ),
        }


def build_did_document(
    did: str, record: Optional[BtcrRecord], continuation: Optional[DIDDocument]
) -> DIDDocument:
    """
    Build the DID document for ``did``.

    The key recovered from the chain comes first (``{did}#key-1``), followed by the continuation's keys and
    authentications. Services come from the continuation only.
    """
    public_keys: List[PublicKey] = []
    authentications: List[Union[str, Authentication]] = []
    services: List[Service] = []

    if record is not None:
        key_id = f"{did}#key-1"
        public_keys.append(
            PublicKey(id=key_id, type=PUBLIC_KEY_TYPE, public_key_hex=record.input_script_pub_key)
        )
        authentications.append(Authentication(type=AUTHENTICATION_TYPE, public_key=key_id))

    if continuation is not None:
        public_keys.extend(continuation.public_keys)
        authentications.extend(continuation.authentications)
        services = list(continuation.services)

    return DIDDocument(
        id=did,
        public_keys=public_keys,
        authentications=authentications,
        services=services,
    )


def is_revoked(tip: TipResult, continuation: Optional[DIDDocument]) -> bool:
    """The BTCR output moved on-chain and nobody published a continuation for the new tip."""
    return len(tip.spent_in) > 0 and continuation is None


def resolve_document(
    did: str, tip: TipResult, continuation: Optional[DIDDocument]
) -> Optional[DIDDocument]:
    """Return the DID document for a followed spend chain, None if there is nothing to resolve to."""
    if tip.record is None and len(tip.spent_in) == 0:
        # The identifier points at a transaction without BTCR data.
        return None
    if is_revoked(tip, continuation):
        return None
    return build_did_document(did, tip.record, continuation)


def build_method_metadata(tip: TipResult, continuation: Optional[DIDDocument]) -> MethodMetadata:
    record = tip.record
    return MethodMetadata(
        input_script_pub_key=record.input_script_pub_key if record is not None else None,
        continuation_uri=record.continuation_uri if record is not None else None,
        continuation=continuation,
        chain=tip.locator.chain,
        initial_block_height=tip.initial_locator.block_height,
        initial_block_index=tip.initial_locator.block_index,
        initial_txid=tip.initial_ref,
        initial_txref=txref(tip.initial_locator),
        block_height=tip.locator.block_height,
        block_index=tip.locator.block_index,
        txid=tip.ref,
        txref=txref(tip.locator),
        spent_in_chain_and_txids=list(tip.spent_in),
    )
