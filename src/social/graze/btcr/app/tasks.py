import asyncio
import logging
from typing import NoReturn

from aiohttp import web

from social.graze.btcr.app.config import HealthGaugeAppKey

logger = logging.getLogger(__name__)

HEALTH_RECOVERY_INTERVAL = 30


async def tick_health_task(app: web.Application) -> NoReturn:
    """
    Lower the health gauge's failure score by 1 every 30 seconds.
    """

    logger.info("Starting health gauge task")

    health_gauge = app[HealthGaugeAppKey]
    while True:
        await health_gauge.recover()
        await asyncio.sleep(HEALTH_RECOVERY_INTERVAL)
