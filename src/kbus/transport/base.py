"""Transport interface.

This is the (small) contract that transport implementations should follow.
It lives outside :mod:`kbus.protocol` so the protocol remains transport-agnostic.
A transport moves complete, already-framed messages; connection setup and
authentication happen before a transport is handed to a connection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ..errors import Error
from ..protocol.message import Message


# Transport agnostic exceptions

class TransportError(Error):
    """Base class for all transport-layer errors."""


class TransportConnectionError(TransportError):
    """The link to the remote side is broken.

    This is distinct from :class:`kbus.errors.BusError`: the remote side did
    not reject anything, the message simply cannot travel.
    """


class Transport(ABC):
    """Minimal contract for a message transport."""

    @abstractmethod
    def open(self) -> None:
        """Establish the underlying connection/socket."""

    @abstractmethod
    def close(self) -> None:
        """Tear down the underlying connection/socket."""

    @abstractmethod
    def send(self, msg: Message) -> None:
        """Send a protocol Message.

        Raises TransportConnectionError if the link is down.
        """

    @abstractmethod
    def recv(self, timeout: Optional[float] = None) -> Optional[Message]:
        """Receive the next protocol Message.

        Returns None if nothing arrived within *timeout* seconds. Raises
        TransportConnectionError once the link is down, and FramingError
        for a frame that does not decode; the latter affects that one frame
        only, and the next call may succeed.
        """

    @property
    def is_open(self) -> bool:
        """Whether the transport is currently connected."""
        return False
