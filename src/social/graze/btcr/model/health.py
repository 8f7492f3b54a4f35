import asyncio

# A blockchain backend failing one resolution.
RESOLUTION_FAILURE_WEIGHT = 1

# An exception escaping a request handler.
UNEXPECTED_ERROR_WEIGHT = 10


class HealthGauge:
    """
    Failure score backing /internal/ready.

    Only failures that say something about this instance count. A resolution the blockchain backend could not serve
    adds RESOLUTION_FAILURE_WEIGHT, an exception escaping a handler adds UNEXPECTED_ERROR_WEIGHT. Malformed
    identifiers and broken continuation documents are the requester's or publisher's problem and add nothing.

    The score drops by one every HEALTH_RECOVERY_INTERVAL seconds (see app/tasks.py). With the default threshold,
    more than a hundred backend failures or eleven unexpected errors in a burst mark the instance not ready until
    the score has decayed.
    """

    def __init__(self, value: int = 0, threshold: int = 100) -> None:
        self._value = value
        self._threshold = threshold
        self._lock = asyncio.Lock()

    async def record_failure(self, weight: int = RESOLUTION_FAILURE_WEIGHT) -> int:
        async with self._lock:
            self._value += int(weight)
            return self._value

    async def recover(self) -> None:
        async with self._lock:
            if self._value > 0:
                self._value -= 1

    async def is_healthy(self) -> bool:
        async with self._lock:
            return self._value <= self._threshold
