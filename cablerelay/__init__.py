"""Building blocks of a real-time Action Cable relay: subscriptions, routing, broadcast intake and utilities."""

__version__ = "1.3.0"