"""
Reconnecting client for the maritime stream.

Keeps at most one live WebSocket, exposes the connection status and the last
envelope received, and retries after a delay whenever the connection drops.
"""

import asyncio
import json
import logging
from enum import Enum

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .config import StreamConfig
from .envelope import ParseError, decode
from .timers import one_shot

logger = logging.getLogger(__name__)


class ConnectionStatus(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ConnectionManager:
    """Client side of the stream: connect, decode, dispatch, reconnect."""

    def __init__(self, url, config=None, connector=None, clock=None):
        self.url = url
        self.config = config or StreamConfig()
        self.connector = connector or websockets.connect
        self.clock = clock
        self.status = ConnectionStatus.CONNECTING
        self.last_message = None
        self.parse_errors = 0
        self.open_attempts = 0
        self.failures = 0  # consecutive closes since the last successful open
        self._transport = None
        self._task = None
        self._reconnect_timer = None
        self._stopped = False
        self._listeners = {"message": [], "status": [], "error": []}

    @property
    def is_connected(self):
        return self.status is ConnectionStatus.CONNECTED

    @property
    def reconnect_pending(self):
        return self._reconnect_timer is not None and self._reconnect_timer.active

    def on_message(self, callback):
        """callback(envelope) for every well-formed frame."""
        self._listeners["message"].append(callback)

    def on_status(self, callback):
        """callback(status) on every status change."""
        self._listeners["status"].append(callback)

    def on_error(self, callback):
        """callback(error) for every frame that fails to parse."""
        self._listeners["error"].append(callback)

    def _notify(self, kind, value):
        for callback in self._listeners[kind]:
            try:
                callback(value)
            except Exception:
                # Listener bugs must not break the receive loop
                logger.exception("%s listener failed", kind)

    def _set_status(self, status):
        if status is self.status:
            return
        self.status = status
        self._notify("status", status)

    def connect(self):
        """Start an open attempt unless a transport is live or one is already in flight."""
        if self._transport is not None or (self._task is not None and not self._task.done()):
            return self._task
        self._stopped = False
        self._cancel_reconnect()
        self._set_status(ConnectionStatus.CONNECTING)
        self._task = asyncio.get_running_loop().create_task(self._run(), name="maritime-stream-client")
        return self._task

    async def _run(self):
        self.open_attempts += 1
        try:
            transport = await self.connector(self.url)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            logger.warning("Maritime WebSocket connect to %s failed: %s", self.url, e)
            self._handle_close()
            return

        if self._stopped:
            await transport.close()
            return

        self._transport = transport
        self.failures = 0
        self._cancel_reconnect()
        self._set_status(ConnectionStatus.CONNECTED)
        logger.info("Maritime WebSocket connected to %s", self.url)

        try:
            async for frame in transport:
                self.handle_frame(frame)
        except ConnectionClosed as e:
            logger.warning("Maritime WebSocket error: %s", e)
        except Exception:
            logger.exception("Maritime WebSocket receive loop failed, dropping connection")
            try:
                await transport.close()
            except (ConnectionClosed, OSError) as e:
                logger.debug("Error while closing transport: %s", e)
        finally:
            self._transport = None
        logger.info("Maritime WebSocket disconnected")
        self._handle_close()

    def _handle_close(self):
        self._set_status(ConnectionStatus.DISCONNECTED)
        if self._stopped:
            return
        self.failures += 1
        limit = self.config.reconnect_max_attempts
        if limit is not None and self.failures > limit:
            logger.error("Giving up on %s after %s reconnect attempts", self.url, limit)
            return
        delay = self.config.reconnect_delay_for(self.failures)
        self._cancel_reconnect()
        self._reconnect_timer = one_shot(delay, self.connect, clock=self.clock, name="maritime-stream-reconnect").start()
        logger.debug("Reconnecting to %s in %.1fs", self.url, delay)

    def _cancel_reconnect(self):
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def handle_frame(self, frame):
        """Decode one inbound frame. Malformed frames are reported and dropped."""
        try:
            envelope = decode(frame)
        except ParseError as e:
            self.parse_errors += 1
            logger.warning("Failed to parse maritime stream message: %s", e)
            self._notify("error", e)
            return None
        self.last_message = envelope
        self._notify("message", envelope)
        return envelope

    async def send_message(self, payload):
        """Send payload as JSON if connected; otherwise drop it. Never raises."""
        transport = self._transport
        if transport is None or not self.is_connected:
            logger.debug("Dropping outbound message, not connected")
            return False
        try:
            await transport.send(json.dumps(payload))
        except (TypeError, ValueError) as e:
            logger.warning("Dropping unserializable outbound message: %s", e)
            return False
        except (ConnectionClosed, OSError) as e:
            logger.warning("Outbound message lost: %s", e)
            return False
        return True

    async def disconnect(self):
        """Explicit teardown; no reconnect is scheduled afterwards."""
        self._stopped = True
        self._cancel_reconnect()
        task, transport = self._task, self._transport
        self._transport = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        if transport is not None:
            try:
                await transport.close()
            except (ConnectionClosed, OSError) as e:
                logger.debug("Error while closing transport: %s", e)
        if task is not None and task is not asyncio.current_task():
            await asyncio.gather(task, return_exceptions=True)
        self._set_status(ConnectionStatus.DISCONNECTED)

    async def run(self):
        """Connect and keep reconnecting until cancelled."""
        self.connect()
        try:
            await asyncio.Future()
        finally:
            await self.disconnect()
