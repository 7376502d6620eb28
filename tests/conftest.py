"""Shared fixtures: a controllable clock, a client, and a snapshot recorder."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Iterator
from typing import Any

import pytest
import pytest_asyncio

from pynagare.client import NagareClient
from pynagare.config import NagareConfig
from pynagare.observable import Subscriber

T0_MS = 1_767_225_600_000  # 2026-01-01T00:00:00Z


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start: int = T0_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class Recorder:
    """Subscriber that keeps every delivered snapshot."""

    def __init__(self) -> None:
        self.responses: list[Any] = []
        self.completed = 0
        self.subscriber: Subscriber[Any] = Subscriber(self.responses.append, on_complete=self._on_complete)

    def _on_complete(self) -> None:
        self.completed += 1

    @property
    def cycles(self) -> list[str]:
        return [response.cycle for response in self.responses]

    @property
    def last(self) -> Any:
        return self.responses[-1]


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client(clock: FakeClock) -> Iterator[NagareClient]:
    client = NagareClient(NagareConfig(storage_id="test"), clock=clock)
    yield client
    client.close()


@pytest_asyncio.fixture
async def recorder() -> AsyncIterator[Recorder]:
    recorder = Recorder()
    yield recorder
    recorder.subscriber.unsubscribe()
