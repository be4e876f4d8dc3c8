"""The business-logic controller interface and general node settings."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence


@dataclass
class NodeConfig:
    """General node settings."""

    # How often to send Action Cable pings (seconds).
    ping_interval: int = 3
    # How often to refresh node stats (seconds).
    stats_refresh_interval: int = 5
    # Maximum size of the hub's worker pool.
    hub_gopool_size: int = 16
    # Ping timestamp precision: "s", "ms" or "ns".
    ping_timestamp_precision: str = "s"


class Controller(ABC):
    """Handles connection and channel commands (e.g. by calling an RPC server).

    Methods raise on failure. Command methods may return None to signal that
    they have nothing to say about a command.
    """

    @abstractmethod
    def start(self) -> None:
        """Prepare the controller for work."""

    @abstractmethod
    def shutdown(self) -> None:
        """Release the controller's resources."""

    @abstractmethod
    def authenticate(self, sid: str, env: Any) -> Any:
        """Authenticate a connection and return the connect result."""

    @abstractmethod
    def subscribe(self, sid: str, env: Any, identifiers: str, channel: str) -> Any:
        """Subscribe a connection to a channel and return the command result."""

    @abstractmethod
    def unsubscribe(self, sid: str, env: Any, identifiers: str, channel: str) -> Any:
        """Unsubscribe a connection from a channel and return the command result."""

    @abstractmethod
    def perform(self, sid: str, env: Any, identifiers: str, channel: str, data: str) -> Any:
        """Perform a channel action and return the command result."""

    @abstractmethod
    def disconnect(
        self, sid: str, env: Any, identifiers: str, subscriptions: Sequence[str]
    ) -> None:
        """Notify that a connection has gone away."""