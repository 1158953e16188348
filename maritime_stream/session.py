"""Per-connection push schedule."""

import itertools
import logging
import random
from datetime import datetime, timezone

from websockets.exceptions import ConnectionClosed

from .config import StreamConfig
from .envelope import PUSH_CATEGORIES, Category, encode
from .timers import repeating

logger = logging.getLogger(__name__)

_session_ids = itertools.count(1)


class Session:
    """One client's push loop: an initial vessel sync, then a random category every tick.

    A Session owns exactly one timer and is closed exactly once, either by
    the server on disconnect or by itself when a send fails.
    """

    def __init__(self, connection, producer, config=None, rng=None, clock=None):
        self.session_id = next(_session_ids)
        self.connection = connection
        self.producer = producer
        self.config = config or StreamConfig()
        self.rng = rng or random.Random()
        self.clock = clock
        self.created_at = datetime.now(timezone.utc)
        self.sent_count = 0
        self.timer = None
        self.closed = False
        self.close_reason = None
        self._close_hooks = []

    def __repr__(self):
        state = "closed" if self.closed else "open"
        return f"<Session #{self.session_id} {state} sent={self.sent_count}>"

    def on_close(self, hook):
        """Register hook(session), called once when the session closes."""
        self._close_hooks.append(hook)

    async def start(self):
        """Send the initial sync, then arm the periodic timer."""
        if not await self.push(Category.VESSEL_UPDATE, self.config.initial_vessel_count):
            return
        if self.closed:
            return
        self.timer = repeating(
            self.config.push_interval, self.tick, clock=self.clock,
            name=f"session-{self.session_id}-push",
        ).start()

    def pick_category(self):
        return self.rng.choice(PUSH_CATEGORIES)

    def batch_size(self, category):
        if category is Category.VESSEL_UPDATE:
            return self.config.vessel_batch_count
        if category is Category.EQUIPMENT_DATA:
            return self.config.equipment_batch_count
        return None

    async def tick(self):
        if self.closed:
            return
        category = self.pick_category()
        await self.push(category, self.batch_size(category))

    async def push(self, category, count=None):
        """Produce, encode and send one envelope. Returns False if the session closed."""
        frame = encode(category, self.producer.produce(category, count))
        try:
            await self.connection.send(frame)
        except ConnectionClosed as e:
            self.close(f"send failed, connection closed ({e})")
            return False
        except OSError as e:
            self.close(f"send failed ({e})")
            await self.release_connection()
            return False
        self.sent_count += 1
        return True

    async def release_connection(self):
        """Close the underlying websocket so the server handler can finish."""
        try:
            await self.connection.close()
        except (ConnectionClosed, OSError) as e:
            logger.debug("Session #%s: error closing connection: %s", self.session_id, e)

    def close(self, reason="closed"):
        """Stop the timer and run close hooks. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        self.close_reason = reason
        if self.timer is not None:
            self.timer.cancel()
        logger.debug("Session #%s closed: %s", self.session_id, reason)
        for hook in self._close_hooks:
            try:
                hook(self)
            except Exception:
                logger.exception("Close hook failed for session #%s", self.session_id)
