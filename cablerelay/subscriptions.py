"""Per-session record of channel subscriptions and their streams."""

from __future__ import annotations

import threading


class SubscriptionState:
    """Thread-safe mapping of channel identifiers to the streams they follow."""

    def __init__(self) -> None:
        self._channels: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def has_channel(self, channel_id: str) -> bool:
        """Return True when the channel is subscribed."""
        with self._lock:
            return channel_id in self._channels

    def add_channel(self, channel_id: str) -> None:
        """Subscribe to a channel, starting with no streams."""
        with self._lock:
            self._channels[channel_id] = set()

    def remove_channel(self, channel_id: str) -> None:
        """Forget a channel together with its streams."""
        with self._lock:
            self._channels.pop(channel_id, None)

    def channels(self) -> list[str]:
        """Return the subscribed channel identifiers."""
        with self._lock:
            return list(self._channels)

    def to_dict(self) -> dict[str, list[str]]:
        """Return a snapshot of every channel with its streams."""
        with self._lock:
            return {channel: list(streams) for channel, streams in self._channels.items()}

    def add_channel_stream(self, channel_id: str, stream: str) -> None:
        """Attach a stream to a subscribed channel; unknown channels are ignored."""
        with self._lock:
            streams = self._channels.get(channel_id)
            if streams is not None:
                streams.add(stream)

    def remove_channel_stream(self, channel_id: str, stream: str) -> None:
        """Detach a stream from a channel, if both are known."""
        with self._lock:
            streams = self._channels.get(channel_id)
            if streams is not None:
                streams.discard(stream)

    def remove_channel_streams(self, channel_id: str) -> list[str]:
        """Detach all streams from a channel and return the ones removed."""
        with self._lock:
            streams = self._channels.get(channel_id)
            if streams is None:
                return []
            self._channels[channel_id] = set()
            return list(streams)

    def streams_for(self, channel_id: str) -> list[str]:
        """Return the streams of a channel (empty for an unknown channel)."""
        with self._lock:
            return list(self._channels.get(channel_id, ()))