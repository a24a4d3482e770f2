"""
checkout_engine — risk gate, cart sync, order placement and event delivery.

    from checkout_engine import cache as C      # Expiring tiers
    from checkout_engine import ratelimit as RL # Fixed-window limiters
    from checkout_engine import risk as R       # Courier verification
    from checkout_engine import checkout as Co  # Orchestrator
    from checkout_engine import events as E     # Batching and delivery
"""

from checkout_engine import lift
from checkout_engine import cache
from checkout_engine import ratelimit
from checkout_engine import storage
from checkout_engine import risk
from checkout_engine import commerce
from checkout_engine import audience
from checkout_engine import events
from checkout_engine import checkout
from checkout_engine._types import Lazy, Clock, JSON
from checkout_engine.config import Settings
from checkout_engine.engine import Engine, build_engine

__version__ = "0.1.0"

__all__ = (
    "lift",
    "cache",
    "ratelimit",
    "storage",
    "risk",
    "commerce",
    "audience",
    "events",
    "checkout",
    "Lazy",
    "Clock",
    "JSON",
    "Settings",
    "Engine",
    "build_engine",
)
