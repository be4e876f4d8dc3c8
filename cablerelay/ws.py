"""WebSocket frame and close-code definitions shared by connections and sessions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class CloseCode(IntEnum):
    """WebSocket close status codes used by the server."""

    NORMAL_CLOSURE = 1000
    GOING_AWAY = 1001
    NO_STATUS_RECEIVED = 1005
    ABNORMAL_CLOSURE = 1006
    INTERNAL_SERVER_ERR = 1011


# Close codes that mark an expected, orderly end of a client connection.
_EXPECTED_CLOSE_STATUSES = frozenset(
    {
        CloseCode.NORMAL_CLOSURE,
        CloseCode.GOING_AWAY,  # web browser page was closed
        CloseCode.NO_STATUS_RECEIVED,  # Action Cable clients often send no status
    }
)


class FrameType(IntEnum):
    """Kind of frame queued for sending to a client."""

    TEXT = 0
    CLOSE = 1
    BINARY = 2


@dataclass
class SentFrame:
    """A frame waiting to be written to a client connection."""

    frame_type: FrameType
    payload: bytes = b""
    close_code: int = 0
    close_reason: str = ""


@dataclass
class WSConfig:
    """WebSocket connection settings."""

    read_buffer_size: int = 1024
    write_buffer_size: int = 1024
    max_message_size: int = 65536
    enable_compression: bool = False
    allowed_origins: str = ""


def is_close_error(code: int | None) -> bool:
    """Return True when a close code denotes an expected connection close."""
    if code is None:
        return False
    return code in _EXPECTED_CLOSE_STATUSES