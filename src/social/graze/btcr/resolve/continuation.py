import asyncio
import logging

from aiohttp import ClientError, ClientSession
from pydantic import ValidationError

from social.graze.btcr.resolve.document import DIDDocument
from social.graze.btcr.resolve.exceptions import (
    ContinuationMalformed,
    ContinuationUnreachable,
)

logger = logging.getLogger(__name__)

CONTINUATION_ACCEPT = "application/did+ld+json, application/ld+json, application/json"


async def fetch_continuation(session: ClientSession, uri: str) -> DIDDocument:
    """Fetch the DID document continuation published at ``uri``.

    The body may be a bare DID document or a resolution result wrapping one in ``didDocument``.

    Raises:
        ContinuationUnreachable: The request failed or did not return HTTP 200
        ContinuationMalformed: The body is not a JSON object describing a DID document
    """
    try:
        async with session.get(uri, headers={"Accept": CONTINUATION_ACCEPT}) as resp:
            if resp.status != 200:
                raise ContinuationUnreachable(
                    f"Cannot retrieve DID document continuation from {uri}: HTTP {resp.status}"
                )
            try:
                body = await resp.json(content_type=None)
            except ValueError as e:
                raise ContinuationMalformed(
                    f"DID document continuation from {uri} is not JSON: {e}"
                ) from e
    except (ClientError, asyncio.TimeoutError) as e:
        raise ContinuationUnreachable(
            f"Cannot retrieve DID document continuation from {uri}: {type(e).__name__}: {e}"
        ) from e

    if isinstance(body, dict) and "didDocument" in body:
        body = body["didDocument"]

    if not isinstance(body, dict):
        raise ContinuationMalformed(f"DID document continuation from {uri} is not a JSON object")

    try:
        return DIDDocument.model_validate(body)
    except ValidationError as e:
        raise ContinuationMalformed(
            f"DID document continuation from {uri} is not a valid DID document: {e}"
        ) from e
