"""A controller that routes channel commands to per-channel handlers."""

from __future__ import annotations

import json
from typing import Any, Sequence

from cablerelay.controller import Controller


class RouteExistsError(ValueError):
    """Raised when a route for a channel is defined twice."""


def extract_channel(identifier: str) -> str:
    """Return the channel name from a JSON identifier, or '' when there is none."""
    try:
        params = json.loads(identifier)
    except (ValueError, TypeError):
        return ""
    if not isinstance(params, dict):
        return ""
    channel = params.get("channel")
    return channel if isinstance(channel, str) else ""


class RouterController(Controller):
    """Sends channel commands to a routed handler, falling back to a default.

    A routed handler that returns None passes the command on to the default.
    """

    def __init__(self, controller: Controller | None) -> None:
        self._controller = controller
        self._routes: dict[str, Controller] = {}

    def set_default(self, controller: Controller) -> None:
        self._controller = controller

    def route(self, channel: str, handler: Controller) -> None:
        """Register a handler for a channel name."""
        if channel in self._routes:
            raise RouteExistsError(f"Route has been already defined: {channel}")
        self._routes[channel] = handler

    def empty(self) -> bool:
        return not self._routes

    def routes(self) -> list[str]:
        return list(self._routes)

    def _handler_for(self, channel: str) -> Controller | None:
        name = extract_channel(channel)
        if not name:
            return None
        return self._routes.get(name)

    def start(self) -> None:
        return self._default.start()

    def shutdown(self) -> None:
        return self._default.shutdown()

    def authenticate(self, sid: str, env: Any) -> Any:
        return self._default.authenticate(sid, env)

    def subscribe(self, sid: str, env: Any, identifiers: str, channel: str) -> Any:
        handler = self._handler_for(channel)
        if handler is not None:
            result = handler.subscribe(sid, env, identifiers, channel)
            if result is not None:
                return result
        return self._default.subscribe(sid, env, identifiers, channel)

    def unsubscribe(self, sid: str, env: Any, identifiers: str, channel: str) -> Any:
        handler = self._handler_for(channel)
        if handler is not None:
            result = handler.unsubscribe(sid, env, identifiers, channel)
            if result is not None:
                return result
        return self._default.unsubscribe(sid, env, identifiers, channel)

    def perform(self, sid: str, env: Any, identifiers: str, channel: str, data: str) -> Any:
        handler = self._handler_for(channel)
        if handler is not None:
            result = handler.perform(sid, env, identifiers, channel, data)
            if result is not None:
                return result
        return self._default.perform(sid, env, identifiers, channel, data)

    def disconnect(
        self, sid: str, env: Any, identifiers: str, subscriptions: Sequence[str]
    ) -> None:
        return self._default.disconnect(sid, env, identifiers, subscriptions)

    @property
    def _default(self) -> Controller:
        if self._controller is None:
            raise RuntimeError("No default controller configured")
        return self._controller