"""ZMQ multipart framing for bus messages.

One bus message travels as exactly one frame, holding the complete encoded
message: primary header, header fields, padding and body.
"""

from __future__ import annotations

from typing import Sequence, Tuple

from ...errors import FramingError
from ...protocol.message import Message


def to_frames(msg: Message) -> Tuple[bytes, ...]:
    """Encode a protocol Message to ZMQ multipart frames."""

    return tuple(msg)


def from_frames(parts: Sequence[bytes]) -> Message:
    """Decode ZMQ multipart frames into a protocol Message."""

    if not parts:
        raise FramingError("empty message")

    if len(parts) != 1:
        raise FramingError(f"expected one frame per message, received {len(parts)}")

    return Message.from_bytes(parts[0])
