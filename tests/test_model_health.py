"""
Unit tests for the readiness gauge in social.graze.btcr.model.health and its recovery task
"""

import asyncio
from unittest.mock import patch

import pytest
from aiohttp import web

from social.graze.btcr.app.config import HealthGaugeAppKey
from social.graze.btcr.app.tasks import tick_health_task
from social.graze.btcr.model.health import (
    RESOLUTION_FAILURE_WEIGHT,
    UNEXPECTED_ERROR_WEIGHT,
    HealthGauge,
)


class TestHealthGauge:
    @pytest.mark.asyncio
    async def test_healthy_by_default(self):
        assert await HealthGauge().is_healthy() is True

    @pytest.mark.asyncio
    async def test_failures_above_threshold(self):
        gauge = HealthGauge(threshold=2)

        assert await gauge.record_failure() == 1
        assert await gauge.record_failure() == 2
        assert await gauge.is_healthy() is True
        assert await gauge.record_failure() == 3
        assert await gauge.is_healthy() is False

    @pytest.mark.asyncio
    async def test_weighted_failure(self):
        gauge = HealthGauge(threshold=10)

        assert await gauge.record_failure(weight=11) == 11
        assert await gauge.is_healthy() is False

    @pytest.mark.asyncio
    async def test_default_threshold_weights(self):
        """Test eleven unexpected errors trip readiness where eleven backend failures do not."""
        backend = HealthGauge()
        unexpected = HealthGauge()

        for _ in range(11):
            await backend.record_failure(RESOLUTION_FAILURE_WEIGHT)
            await unexpected.record_failure(UNEXPECTED_ERROR_WEIGHT)

        assert await backend.is_healthy() is True
        assert await unexpected.is_healthy() is False

    @pytest.mark.asyncio
    async def test_recover(self):
        gauge = HealthGauge(value=3, threshold=2)

        await gauge.recover()

        assert await gauge.is_healthy() is True

    @pytest.mark.asyncio
    async def test_recover_floors_at_zero(self):
        gauge = HealthGauge(threshold=0)

        await gauge.recover()
        await gauge.recover()
        await gauge.record_failure()

        assert await gauge.is_healthy() is False


class TestTickHealthTask:
    @pytest.mark.asyncio
    async def test_tick_recovers(self):
        """Test the task lowers the score once per interval."""
        app = web.Application()
        gauge = HealthGauge(value=5, threshold=4)
        app[HealthGaugeAppKey] = gauge

        with patch("social.graze.btcr.app.tasks.HEALTH_RECOVERY_INTERVAL", 0):
            task = asyncio.create_task(tick_health_task(app))
            for _ in range(5):
                await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert await gauge.is_healthy() is True
