import json
import logging
from time import time

import sentry_sdk
from aiohttp import web

from social.graze.btcr.app.config import (
    HealthGaugeAppKey,
    MetricsClientAppKey,
    ResolverAppKey,
)
from social.graze.btcr.model.health import RESOLUTION_FAILURE_WEIGHT
from social.graze.btcr.resolve.exceptions import (
    ContinuationMalformed,
    ContinuationUnreachable,
    InvalidIdentifier,
    ResolutionFailed,
)

logger = logging.getLogger(__name__)

DID_RESOLUTION_CONTENT_TYPE = "application/ld+json"


def error_body(e: Exception) -> str:
    return json.dumps({"error": str(e), "error_type": type(e).__name__})


async def handle_resolve(request: web.Request):
    """
    Resolve a did:btcr identifier and return the resolution result.

    Responds 404 for identifiers of other DID methods, 400 for malformed txrefs, 502 when the continuation
    document cannot be used and 500 when the blockchain backend fails.
    """
    identifier = request.match_info["identifier"]
    resolver = request.app[ResolverAppKey]
    metrics_client = request.app[MetricsClientAppKey]
    health_gauge = request.app[HealthGaugeAppKey]

    start_time = time()
    outcome = "error"
    try:
        result = await resolver.resolve(identifier)
        if result is None:
            outcome = "not_found"
            raise web.HTTPNotFound(
                body=json.dumps({"error": f"Not a did:btcr identifier: {identifier}"}),
                content_type="application/json",
            )

        outcome = "resolved" if result.did_document is not None else "deactivated"
        metrics_client.gauge(
            "btcr.resolve.spends", len(result.method_metadata.spent_in_chain_and_txids)
        )
        return web.json_response(result.to_json(), content_type=DID_RESOLUTION_CONTENT_TYPE)
    except InvalidIdentifier as e:
        outcome = "invalid"
        raise web.HTTPBadRequest(body=error_body(e), content_type="application/json")
    except (ContinuationUnreachable, ContinuationMalformed) as e:
        outcome = "continuation_error"
        logger.warning("Continuation error resolving %s: %s", identifier, e)
        raise web.HTTPBadGateway(body=error_body(e), content_type="application/json")
    except ResolutionFailed as e:
        logger.error("Resolution of %s failed at %s: %s", identifier, e.location, e)
        sentry_sdk.capture_exception(e)
        await health_gauge.record_failure(RESOLUTION_FAILURE_WEIGHT)
        raise web.HTTPInternalServerError(body=error_body(e), content_type="application/json")
    finally:
        metrics_client.timer("btcr.resolve.time", time() - start_time)
        metrics_client.increment("btcr.resolve.count", 1, tag_dict={"outcome": outcome})
