"""Transport layer implementations."""

from .base import (
    Transport,
    TransportError,
    TransportConnectionError,
)

from . import session
from . import zmq
