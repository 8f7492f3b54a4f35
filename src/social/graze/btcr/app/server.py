import asyncio
import contextlib
import logging
from time import time
from typing import Optional

import aiohttp
import sentry_sdk
from aiohttp import web
from sentry_sdk.integrations.aiohttp import AioHttpIntegration

from social.graze.btcr.app.backends import create_bitcoin_connection
from social.graze.btcr.app.config import (
    BitcoinConnectionAppKey,
    HealthGaugeAppKey,
    MetricsClientAppKey,
    ResolverAppKey,
    SessionAppKey,
    Settings,
    SettingsAppKey,
    TickHealthTaskAppKey,
)
from social.graze.btcr.app.handlers.internal import (
    handle_internal_alive,
    handle_internal_ready,
    handle_properties,
)
from social.graze.btcr.app.handlers.resolver import handle_resolve
from social.graze.btcr.app.metrics import MetricsClient, create_metrics_client
from social.graze.btcr.app.tasks import tick_health_task
from social.graze.btcr.model.health import UNEXPECTED_ERROR_WEIGHT, HealthGauge
from social.graze.btcr.resolve.driver import BtcrResolver

logger = logging.getLogger(__name__)


def create_http_session(settings: Settings) -> aiohttp.ClientSession:
    trace_config = aiohttp.TraceConfig()

    if settings.debug:

        async def on_request_start(
            session, trace_config_ctx, params: aiohttp.TraceRequestStartParams
        ):
            logging.info("Starting request: %s", params)

        async def on_request_end(session, trace_config_ctx, params):
            logging.info("Ending request: %s", params)

        trace_config.on_request_start.append(on_request_start)
        trace_config.on_request_end.append(on_request_end)

    return aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=settings.http_timeout),
        trace_configs=[trace_config],
    )


async def background_tasks(app):
    logger.info("Starting up")
    settings: Settings = app[SettingsAppKey]

    app[SessionAppKey] = create_http_session(settings)

    if ResolverAppKey not in app:
        connection = create_bitcoin_connection(settings, app[SessionAppKey])
        app[BitcoinConnectionAppKey] = connection
        app[ResolverAppKey] = BtcrResolver(
            connection, app[SessionAppKey], max_hops=settings.max_spend_hops
        )

    if MetricsClientAppKey not in app:
        metrics_client = create_metrics_client(
            settings.metrics_backend,
            host=settings.statsd_host,
            port=settings.statsd_port,
            debug=settings.debug,
        )
        await metrics_client.connect()
        app[MetricsClientAppKey] = metrics_client

    logger.info("Startup complete")

    app[TickHealthTaskAppKey] = asyncio.create_task(tick_health_task(app))

    yield

    logger.info("Shutting down background tasks")

    app[TickHealthTaskAppKey].cancel()

    with contextlib.suppress(asyncio.exceptions.CancelledError):
        await app[TickHealthTaskAppKey]

    await app[SessionAppKey].close()
    await app[MetricsClientAppKey].close()


@web.middleware
async def sentry_middleware(request: web.Request, handler):
    try:
        response = await handler(request)
        return response
    except web.HTTPException:
        raise
    except Exception as e:
        sentry_sdk.capture_exception(e)
        await request.app[HealthGaugeAppKey].record_failure(UNEXPECTED_ERROR_WEIGHT)
        raise e


@web.middleware
async def statsd_middleware(request: web.Request, handler):
    metrics_client = request.app[MetricsClientAppKey]
    request_method: str = request.method
    resource = request.match_info.route.resource
    request_path = resource.canonical if resource is not None else request.path

    start_time: float = time()
    response_status_code = 0

    try:
        response = await handler(request)
        response_status_code = response.status
        return response
    except web.HTTPException as e:
        response_status_code = e.status
        raise e
    except Exception as e:
        response_status_code = 500
        metrics_client.increment(
            "btcr.server.request.exception",
            1,
            tag_dict={
                "exception": type(e).__name__,
                "path": request_path,
                "method": request_method,
            },
        )
        raise e
    finally:
        metrics_client.timer(
            "btcr.server.request.time",
            time() - start_time,
            tag_dict={"path": request_path, "method": request_method},
        )
        metrics_client.increment(
            "btcr.server.request.count",
            1,
            tag_dict={
                "path": request_path,
                "method": request_method,
                "status": response_status_code,
            },
        )


async def start_web_server(
    settings: Optional[Settings] = None,
    resolver: Optional[BtcrResolver] = None,
    metrics_client: Optional[MetricsClient] = None,
):
    """
    Build the driver's web application.

    The resolver and metrics client are normally created at startup from the settings; passing them in replaces
    the configured ones.
    """

    if settings is None:
        settings = Settings()  # type: ignore
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            send_default_pii=True,
            integrations=[AioHttpIntegration()],
        )
    app = web.Application(middlewares=[statsd_middleware, sentry_middleware])

    app[SettingsAppKey] = settings
    app[HealthGaugeAppKey] = HealthGauge()
    if resolver is not None:
        app[ResolverAppKey] = resolver
    if metrics_client is not None:
        app[MetricsClientAppKey] = metrics_client

    app.add_routes(
        [
            web.get("/1.0/identifiers/{identifier}", handle_resolve),
            web.get("/1.0/properties", handle_properties),
        ]
    )

    app.add_routes(
        [
            web.get("/internal/alive", handle_internal_alive),
            web.get("/internal/ready", handle_internal_ready),
        ]
    )

    app.cleanup_ctx.append(background_tasks)

    return app
