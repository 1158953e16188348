"""Cancellable timers on the asyncio loop, with a swappable clock."""

import asyncio
import inspect
import logging
import time

logger = logging.getLogger(__name__)


class AsyncioClock:
    """Wall time as seen by the event loop."""

    def monotonic(self):
        return time.monotonic()

    async def sleep(self, seconds):
        await asyncio.sleep(seconds)


class Timer:
    """Runs `callback` after `delay` seconds, once or every `delay` seconds.

    cancel() is synchronous and idempotent: once it returns the callback will
    not be invoked again, even if a tick was already due.
    """

    def __init__(self, delay, callback, clock=None, repeat=False, name=None):
        self.delay = delay
        self.callback = callback
        self.clock = clock or AsyncioClock()
        self.repeat = repeat
        self.name = name or getattr(callback, "__qualname__", "timer")
        self.fired = 0
        self._task = None
        self._cancelled = False

    @property
    def active(self):
        return self._task is not None and not self._task.done() and not self._cancelled

    def start(self):
        if self._cancelled:
            raise RuntimeError(f"timer {self.name} was cancelled")
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        return self

    def cancel(self):
        if self._cancelled:
            return
        self._cancelled = True
        task = self._task
        # A callback may cancel its own timer; the loop below sees the flag.
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _run(self):
        # Ticks are due at fixed deadlines, so a slow callback does not stretch the period.
        next_at = self.clock.monotonic() + self.delay
        while not self._cancelled:
            remaining = next_at - self.clock.monotonic()
            if remaining > 0:
                await self.clock.sleep(remaining)
            if self._cancelled:
                return
            self.fired += 1
            try:
                result = self.callback()
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Timer %s callback failed", self.name)
            if not self.repeat:
                return
            next_at += self.delay
            now = self.clock.monotonic()
            if next_at < now:
                # Fell a whole interval behind: resume the cadence from now.
                next_at = now


def repeating(interval, callback, clock=None, name=None):
    return Timer(interval, callback, clock=clock, repeat=True, name=name)


def one_shot(delay, callback, clock=None, name=None):
    return Timer(delay, callback, clock=clock, repeat=False, name=name)
