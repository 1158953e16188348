"""Runtime settings for the stream server and client."""

import logging
import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080

# Push schedule
PUSH_INTERVAL_S = 5.0
INITIAL_VESSEL_COUNT = 25  # larger batch sent once on connect
VESSEL_BATCH_COUNT = 5
EQUIPMENT_BATCH_COUNT = 3

# Client reconnect
RECONNECT_DELAY_S = 3.0

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class StreamConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    push_interval: float = PUSH_INTERVAL_S
    initial_vessel_count: int = INITIAL_VESSEL_COUNT
    vessel_batch_count: int = VESSEL_BATCH_COUNT
    equipment_batch_count: int = EQUIPMENT_BATCH_COUNT
    reconnect_delay: float = RECONNECT_DELAY_S
    reconnect_backoff: float = 1.0  # 1.0 keeps every retry at reconnect_delay
    reconnect_max_delay: Optional[float] = None
    reconnect_max_attempts: Optional[int] = None
    seed: Optional[int] = None
    log_level: str = "INFO"

    def __post_init__(self):
        if self.push_interval <= 0:
            raise ValueError("push_interval must be > 0")
        if self.reconnect_delay <= 0:
            raise ValueError("reconnect_delay must be > 0")
        if self.reconnect_backoff < 1.0:
            raise ValueError("reconnect_backoff must be >= 1.0")
        if self.reconnect_max_delay is not None and self.reconnect_max_delay < self.reconnect_delay:
            raise ValueError("reconnect_max_delay must be >= reconnect_delay")
        if self.reconnect_max_attempts is not None and self.reconnect_max_attempts < 1:
            raise ValueError("reconnect_max_attempts must be >= 1")
        for name in ("initial_vessel_count", "vessel_batch_count", "equipment_batch_count"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if not 0 <= self.port < 65536:  # 0 picks a free port
            raise ValueError(f"invalid port: {self.port}")

    @classmethod
    def from_env(cls, **overrides) -> "StreamConfig":
        """Build a config from HOST/PORT/PUSH_INTERVAL/SEED/LOG_LEVEL, then apply overrides."""
        seed = os.getenv("SEED")
        values = {
            "host": os.getenv("HOST", DEFAULT_HOST),
            "port": int(os.getenv("PORT", str(DEFAULT_PORT))),
            "push_interval": float(os.getenv("PUSH_INTERVAL", str(PUSH_INTERVAL_S))),
            "seed": int(seed) if seed else None,
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def reconnect_delay_for(self, attempt: int) -> float:
        """Delay before reconnect attempt number `attempt` (1-based)."""
        delay = self.reconnect_delay * (self.reconnect_backoff ** max(attempt - 1, 0))
        if self.reconnect_max_delay is not None:
            delay = min(delay, self.reconnect_max_delay)
        return delay


def setup_logging(level="INFO"):
    """Configure root logging once for the command line tools."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
