import asyncio
import random

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from maritime_stream.config import StreamConfig
from maritime_stream.telemetry import MaritimeDataGenerator


async def settle(rounds=20):
    """Let every ready task run until the loop goes quiet."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ManualClock:
    """Clock whose time only moves when a test advances it."""

    def __init__(self):
        self.now = 0.0
        self._waiters = []  # [deadline, future]

    def monotonic(self):
        return self.now

    async def sleep(self, seconds):
        waiter = [self.now + seconds, asyncio.get_running_loop().create_future()]
        self._waiters.append(waiter)
        try:
            await waiter[1]
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    def pending(self):
        return sum(1 for _, fut in self._waiters if not fut.done())

    def expire(self, seconds):
        """Move time forward and wake due sleepers without letting them run."""
        self.now += seconds
        for deadline, fut in list(self._waiters):
            if deadline <= self.now and not fut.done():
                fut.set_result(None)

    async def advance(self, seconds):
        target = self.now + seconds
        while True:
            await settle()
            due = [d for d, fut in self._waiters if d <= target and not fut.done()]
            if not due:
                break
            self.expire(min(due) - self.now)
        self.now = target
        await settle()


class FakeConnection:
    """Stands in for a websockets connection on either side."""

    def __init__(self, remote_address=("127.0.0.1", 50000)):
        self.remote_address = remote_address
        self.sent = []
        self.closed = False
        self.broken = False
        self.send_error = None  # raised by send() when set
        self._inbound = asyncio.Queue()

    async def send(self, frame):
        if self.send_error is not None:
            raise self.send_error
        if self.broken:
            raise ConnectionClosedError(None, None)
        if self.closed:
            raise ConnectionClosedOK(None, None)
        self.sent.append(frame)

    def feed(self, frame):
        self._inbound.put_nowait(frame)

    def drop(self, error=None):
        """Close from the remote end; `error` is raised to the reader instead of a clean end."""
        self.closed = True
        self._inbound.put_nowait(error)

    async def close(self):
        if not self.closed:
            self.drop()

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        while True:
            item = await self._inbound.get()
            if item is None:
                return
            if isinstance(item, BaseException):
                raise item
            yield item


class FakeConnector:
    """Replacement for websockets.connect that records every open attempt."""

    def __init__(self, fail=False):
        self.fail = fail
        self.attempts = 0
        self.connections = []

    async def __call__(self, url):
        self.attempts += 1
        if self.fail:
            raise ConnectionRefusedError(111, "Connect call failed")
        conn = FakeConnection()
        self.connections.append(conn)
        return conn


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def config():
    return StreamConfig(host="127.0.0.1", port=0)


@pytest.fixture
def producer():
    return MaritimeDataGenerator(random.Random(1234))
