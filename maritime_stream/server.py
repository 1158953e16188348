"""
Maritime Telemetry WebSocket Server

Accepts dashboard clients and gives each one its own push schedule: a
25-vessel sync on connect, then one random telemetry category every interval.
"""

import asyncio
import logging
import random
from contextlib import asynccontextmanager

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from .config import StreamConfig
from .session import Session
from .telemetry import MaritimeDataGenerator

logger = logging.getLogger(__name__)


def describe_peer(websocket):
    address = getattr(websocket, "remote_address", None)
    if not address:
        return "unknown"
    return f"{address[0]}:{address[1]}"


class DistributionServer:
    """Owns the session registry; one Session per accepted connection.

    `producer` is a template: each session gets its own fork of it, and its
    own category RNG, all derived from `rng`.
    """

    def __init__(self, config=None, producer=None, rng=None, clock=None):
        self.config = config or StreamConfig()
        self.rng = rng or random.Random(self.config.seed)
        self.producer = producer or MaritimeDataGenerator(random.Random(self.rng.random()))
        self.clock = clock
        self.sessions = {}  # session_id -> Session

    @property
    def session_count(self):
        return len(self.sessions)

    def create_session(self, websocket):
        """Build and register the Session for a new connection."""
        session = Session(
            websocket,
            self.producer.fork(self.rng.random()),
            config=self.config,
            rng=random.Random(self.rng.random()),
            clock=self.clock,
        )
        self.sessions[session.session_id] = session
        session.on_close(self._discard)
        return session

    def _discard(self, session):
        if self.sessions.pop(session.session_id, None) is not None:
            logger.info(
                "Client disconnected (session #%s, %s). Total: %s",
                session.session_id, session.close_reason, self.session_count,
            )

    async def handle_client(self, websocket):
        """Handle a WebSocket client connection."""
        session = self.create_session(websocket)
        logger.info(
            "Client connected from %s (session #%s). Total: %s",
            describe_peer(websocket), session.session_id, self.session_count,
        )
        reason = "client disconnected"
        try:
            await session.start()
            # Inbound frames carry nothing the server acts on
            async for message in websocket:
                logger.debug("Session #%s sent %d bytes (ignored)", session.session_id, len(message))
                if session.closed:
                    break
        except ConnectionClosedOK:
            pass
        except ConnectionClosed as e:
            logger.warning("WebSocket error on session #%s: %s", session.session_id, e)
            reason = f"connection error ({e})"
        except OSError as e:
            logger.warning("Transport error on session #%s: %s", session.session_id, e)
            reason = f"transport error ({e})"
        finally:
            session.close(reason)

    def close_all(self, reason="server shutdown"):
        for session in list(self.sessions.values()):
            session.close(reason)

    @asynccontextmanager
    async def serve(self):
        """Listen on the configured address; bind errors propagate as OSError."""
        async with websockets.serve(self.handle_client, self.config.host, self.config.port) as server:
            logger.info("Maritime WebSocket server running on ws://%s:%s", self.config.host, self.config.port)
            try:
                yield server
            finally:
                self.close_all()

    async def run_forever(self):
        async with self.serve():
            await asyncio.Future()
