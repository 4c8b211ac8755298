"""Transport-agnostic session layer.

:class:`CallSession` correlates outbound method calls with their replies by
serial number; :class:`SignalSession` holds signal subscriptions and
delivers inbound signals to them. Neither reads from the transport: a
single dispatch point (normally :class:`kbus.connection.Connection`) hands
inbound messages to them, and is the only code that resolves calls.
"""

from __future__ import annotations

import threading
import weakref
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from ..errors import BusError, Error, TimedOut
from ..protocol.fields import MessageType
from ..protocol.match import MatchRule
from ..protocol.message import Message
from .base import Transport


class PendingCall:
    """Client-side helper that waits for the reply to one method call.

    The *state* starts as ``sent`` and ends as exactly one of ``replied``,
    ``errored`` (an error reply arrived), ``timed out``, or ``failed`` (the
    transport broke).
    """

    SENT = "sent"
    REPLIED = "replied"
    ERRORED = "errored"
    TIMED_OUT = "timed out"
    FAILED = "failed"

    def __init__(self, call: Message, session: "CallSession"):
        self.call = call
        self.session = session
        self.state = self.SENT
        self.response: Optional[Message] = None
        self.error: Optional[Exception] = None
        self.rep_event = threading.Event()

    @property
    def serial(self) -> int:
        return self.call.serial

    def __repr__(self) -> str:
        return f"<PendingCall serial={self.serial} {self.state}>"

    def poll(self) -> bool:
        """Return True if the call has resolved, one way or another."""
        return self.rep_event.is_set()

    def wait(self, timeout: Optional[float] = None) -> Message:
        """Block until the call resolves, and return the reply message.

        Raises :class:`kbus.errors.BusError` for an error reply, and
        :class:`kbus.errors.TimedOut` if nothing arrived within *timeout*
        seconds; a timeout retires the serial, so a late reply is dropped.
        """

        if not self.rep_event.wait(timeout):
            if not self.session._expire(self, timeout):
                # The reply arrived as the deadline passed; it is being
                # delivered right now.
                self.rep_event.wait()

        if self.error is not None:
            raise self.error

        return self.response

    def result(self, expect: Any = None, timeout: Optional[float] = None) -> Any:
        """Wait for the reply and decode its body; see
        :meth:`kbus.protocol.message.Message.unpack` for *expect*."""

        response = self.wait(timeout)
        return response.unpack(expect)

    def _complete(self, response: Message) -> None:
        self.response = response

        if response.type == MessageType.ERROR:
            self.state = self.ERRORED
            self.error = _bus_error(response)
        else:
            self.state = self.REPLIED

        self.rep_event.set()

    def _fail(self, error: Exception, state: str) -> None:
        self.error = error
        self.state = state
        self.rep_event.set()


def _bus_error(response: Message) -> Exception:
    """Build the BusError for an error reply; the description, if any, is
    the first argument when that argument is a string."""

    text = ""

    if response.signature.startswith("s"):
        try:
            text = str(response.reader().read())
        except Error as exc:
            return exc

    return BusError(response.error_name, text)


class CallSession:
    """Client-side call/reply correlation."""

    def __init__(self, transport: Transport):
        self.transport = transport
        self._pending: Dict[int, PendingCall] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, serial: int) -> bool:
        return serial in self._pending

    def send(self, call: Message) -> Optional[PendingCall]:
        """Register and transmit *call*. Returns the PendingCall, or None if
        the call does not expect a reply."""

        if not call.reply_expected:
            self.transport.send(call)
            return None

        pending = PendingCall(call, self)

        with self._lock:
            self._pending[call.serial] = pending

        try:
            self.transport.send(call)
        except Exception:
            with self._lock:
                self._pending.pop(call.serial, None)
            raise

        return pending

    def call(self, call: Message, expect: Any = None, timeout: Optional[float] = None) -> Any:
        pending = self.send(call)
        if pending is None:
            return None
        return pending.result(expect, timeout)

    def fail_all(self, error: Exception) -> None:
        """Resolve every outstanding call with *error*; used when the
        transport is lost."""

        with self._lock:
            pendings = list(self._pending.values())
            self._pending.clear()

        for pending in pendings:
            pending._fail(error, PendingCall.FAILED)

    # --- internal ---
    def _handle_reply(self, msg: Message) -> bool:
        """Correlate a method return or error to its PendingCall."""

        with self._lock:
            pending = self._pending.pop(msg.reply_serial, None)

        if pending is None:
            logger.debug("no pending call for reply_serial {}, dropping {!r}", msg.reply_serial, msg)
            return False

        pending._complete(msg)
        return True

    def _expire(self, pending: PendingCall, timeout: Optional[float]) -> bool:
        with self._lock:
            removed = self._pending.pop(pending.serial, None)

        if removed is None:
            return False

        call = pending.call
        pending._fail(
            TimedOut(f"{call.interface}.{call.member} on {call.path}: no reply in {timeout:.2f} sec"),
            PendingCall.TIMED_OUT,
        )
        return True


def _reference(callback: Callable) -> Callable[[], Optional[Callable]]:
    """Return a weak reference to *callback*, whether it is a plain function
    or a bound method."""

    try:
        callback.__func__
        callback.__self__
    except AttributeError:
        return weakref.ref(callback)
    else:
        return weakref.WeakMethod(callback)


class Subscription:
    """One registered signal callback.

    The callback is held by weak reference: the subscription lapses once
    the caller drops its own reference to the callback.
    """

    def __init__(self, rule: MatchRule, callback: Callable, expect: Any = None):
        self.rule = rule
        self.reference = _reference(callback)
        self.expect = expect

    def __repr__(self) -> str:
        return f"<Subscription {self.rule}>"


class SignalSession:
    """Signal subscriptions and delivery."""

    def __init__(self):
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._subscriptions)

    def register(self, rule: Optional[MatchRule], callback: Callable, expect: Any = None) -> Subscription:
        """Invoke *callback* for every inbound signal matching *rule*.

        With no *expect* the callback receives the Message. Otherwise the
        body is decoded per :meth:`kbus.protocol.message.Message.unpack`
        (a signature string, a target type, or a SignalArgs subclass) and
        the callback receives the result. Callbacks run on the dispatch
        thread and should be brief.
        """

        if not callable(callback):
            raise TypeError("callback must be callable")

        if rule is None:
            rule = MatchRule()

        subscription = Subscription(rule, callback, expect)

        with self._lock:
            self._subscriptions.append(subscription)

        return subscription

    def unregister(self, subscription: Subscription) -> None:
        with self._lock:
            try:
                self._subscriptions.remove(subscription)
            except ValueError:
                pass

    def dispatch(self, msg: Message) -> int:
        """Deliver *msg* to every matching subscription, decoding the body
        separately for each. A failure for one subscriber is logged and
        does not affect the others. Returns the number of successful
        deliveries."""

        with self._lock:
            subscriptions = list(self._subscriptions)

        delivered = 0
        invalid = []

        for subscription in subscriptions:
            callback = subscription.reference()

            if callback is None:
                invalid.append(subscription)
                continue

            if not subscription.rule.matches(msg):
                continue

            try:
                if subscription.expect is None:
                    callback(msg)
                else:
                    callback(msg.unpack(subscription.expect))
            except Exception:
                logger.exception("signal subscriber {} failed on {!r}", subscription, msg)
                continue

            delivered += 1

        if invalid:
            with self._lock:
                for subscription in invalid:
                    try:
                        self._subscriptions.remove(subscription)
                    except ValueError:
                        pass

        return delivered
