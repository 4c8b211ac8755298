"""ZeroMQ message transport.

Carries encoded bus messages over a ZeroMQ PAIR or DEALER socket. ZeroMQ
sockets are not thread-safe, so every socket operation happens on a single
background thread: outbound messages are queued and the thread is woken
through an inproc PAIR, inbound frames are queued for :meth:`recv`.
"""

from __future__ import annotations

import itertools
import queue
import threading
from typing import Optional, Sequence

import zmq
from loguru import logger

from ...protocol.message import Message
from ..base import Transport, TransportConnectionError
from .framing import from_frames, to_frames


zmq_context = zmq.Context()

# Placed on the inbox when the transport closes, so blocked readers wake up.
_CLOSED = object()

# Each transport gets its own inproc wakeup endpoint.
_sequence = itertools.count()


class ZmqTransport(Transport):
    """Move bus messages over a ZeroMQ socket.

    The *address* is any ZeroMQ endpoint (``tcp://host:port``,
    ``ipc:///path``, ``inproc://name``). With *bind* set the socket listens
    on the address, otherwise it connects to it.
    """

    def __init__(self, address: str, bind: bool = False, socket_type: int = zmq.PAIR):
        self.address = address
        self.bind = bind
        self.socket_type = socket_type

        self.socket = None
        self.shutdown = False

        self._inbox = queue.SimpleQueue()
        self._outbox = queue.SimpleQueue()

        self._signal_rx = None
        self._signal_tx = None
        self._signal_lock = threading.Lock()
        self._thread = None

    def open(self) -> None:
        if self.socket is not None:
            return

        socket = zmq_context.socket(self.socket_type)
        socket.setsockopt(zmq.LINGER, 0)

        try:
            if self.bind:
                socket.bind(self.address)
            else:
                socket.connect(self.address)
        except zmq.ZMQError as exc:
            socket.close()
            raise TransportConnectionError(f"{self.address}: {exc}") from exc

        internal = f"inproc://kbus.transport.zmq:signal:{next(_sequence)}"
        self._signal_rx = zmq_context.socket(zmq.PAIR)
        self._signal_rx.setsockopt(zmq.LINGER, 0)
        self._signal_rx.bind(internal)
        self._signal_tx = zmq_context.socket(zmq.PAIR)
        self._signal_tx.setsockopt(zmq.LINGER, 0)
        self._signal_tx.connect(internal)

        self._inbox = queue.SimpleQueue()
        self.socket = socket
        self.shutdown = False

        self._thread = threading.Thread(target=self.run, daemon=True)
        self._thread.start()

        logger.debug("zmq transport open: {} ({})", self.address, "bind" if self.bind else "connect")

    def close(self) -> None:
        if self.socket is None:
            return

        with self._signal_lock:
            self.shutdown = True
            self._signal_tx.send(b"")

        self._thread.join()

        with self._signal_lock:
            self._signal_tx.close()
            self._signal_tx = None

        self._signal_rx.close()
        self._signal_rx = None
        self.socket.close()
        self.socket = None

        self._inbox.put(_CLOSED)
        logger.debug("zmq transport closed: {}", self.address)

    @property
    def is_open(self) -> bool:
        return self.socket is not None and not self.shutdown

    def send(self, msg: Message) -> None:
        # Encode in the caller's thread, so encoding errors reach the caller.
        frames = to_frames(msg)

        with self._signal_lock:
            if self._signal_tx is None or self.shutdown:
                raise TransportConnectionError(f"{self.address}: transport is closed")

            self._outbox.put(frames)
            self._signal_tx.send(b"")

    def recv(self, timeout: Optional[float] = None) -> Optional[Message]:
        try:
            parts = self._inbox.get(timeout=timeout)
        except queue.Empty:
            return None

        if parts is _CLOSED:
            # Leave the marker for any other blocked reader.
            self._inbox.put(_CLOSED)
            raise TransportConnectionError(f"{self.address}: transport is closed")

        return from_frames(parts)

    # --- internal ---
    def _handle_outgoing(self) -> None:
        # Clear one signal and send one message.
        self._signal_rx.recv(flags=zmq.NOBLOCK)

        try:
            frames: Sequence[bytes] = self._outbox.get(block=False)
        except queue.Empty:
            # The wakeup from close() has no message attached.
            return

        self.socket.send_multipart(frames)

    def run(self) -> None:
        poller = zmq.Poller()
        poller.register(self.socket, zmq.POLLIN)
        poller.register(self._signal_rx, zmq.POLLIN)

        while not self.shutdown:
            for active, _flag in poller.poll(10000):
                if active == self._signal_rx:
                    self._handle_outgoing()
                elif active == self.socket:
                    parts = tuple(self.socket.recv_multipart())
                    self._inbox.put(parts)
