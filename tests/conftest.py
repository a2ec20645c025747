import asyncio
from typing import Any
from unittest.mock import MagicMock

import pytest

from authlogic.primitives.storage import MemoryStorage


class FakeClock:
    """Simulated time for the refresh scheduler.

    ``sleep`` parks the caller until ``advance`` moves the clock past its
    deadline.
    """

    def __init__(self):
        self.now = 0.0
        self.delays: list[float] = []
        self._waiters: list[tuple[float, asyncio.Future[None]]] = []

    async def sleep(self, delay: float) -> None:
        self.delays.append(delay)
        future = asyncio.get_running_loop().create_future()
        self._waiters.append((self.now + delay, future))
        await future

    async def advance(self, seconds: float) -> None:
        await yield_to_event_loop()
        self.now += seconds
        for waiter in list(self._waiters):
            deadline, future = waiter
            if deadline <= self.now:
                self._waiters.remove(waiter)
                if not future.done():
                    future.set_result(None)
        await yield_to_event_loop()


async def yield_to_event_loop(iterations: int = 20) -> None:
    """Let pending tasks run until they block again."""
    for _ in range(iterations):
        await asyncio.sleep(0)


def json_response(data: Any, status_code: int = 200) -> MagicMock:
    """Mock httpx response carrying a JSON body."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = data
    return response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage()
