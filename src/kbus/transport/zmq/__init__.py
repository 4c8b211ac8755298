"""ZeroMQ transport for bus messages."""

from .channel import ZmqTransport
from .framing import from_frames, to_frames
