""" A :class:`Connection` ties a transport to the call and signal sessions.
    It owns the only reader of the transport: every inbound message passes
    through :func:`Connection.dispatch`, which routes replies to pending
    calls, signals to subscribers, and method calls to served handlers.
"""

import queue
import threading

from loguru import logger

from . import config
from .errors import BusError, Error, FramingError
from .protocol import fields
from .protocol import signature as signatures
from .protocol.fields import MessageType
from .protocol.message import Message
from .transport.base import TransportConnectionError
from .transport.session import CallSession, SignalSession


class Connection:
    """ Exchange messages with a peer or a bus over *transport*, which must
        be a :class:`kbus.transport.base.Transport` instance. The *timeout*
        is the default for method calls, in seconds; the *byteorder* is used
        for outbound calls and signals. Both default to the values in
        :mod:`kbus.config`.

        The standard ``org.freedesktop.DBus.Peer`` methods are served by
        default.

        :ivar calls: The :class:`kbus.transport.session.CallSession`.
        :ivar signals: The :class:`kbus.transport.session.SignalSession`.
        :ivar unique_name: The name assigned by the bus, once :func:`hello`
            has been called.
    """

    worker_count = 4
    poll_interval = 1.0

    def __init__(self, transport, timeout=None, byteorder=None):

        if timeout is None:
            timeout = config.get('timeout')

        if byteorder is None:
            byteorder = config.get('byteorder')

        self.transport = transport
        self.timeout = float(timeout)
        self.byteorder = byteorder
        self.unique_name = None

        self.calls = CallSession(transport)
        self.signals = SignalSession()

        self.handlers = dict()
        self.handlers_lock = threading.Lock()

        self.queue = queue.SimpleQueue()
        self.shutdown = False
        self.thread = None
        self.workers = list()

        self.serve(fields.PEER, 'Ping', _ping)
        self.serve(fields.PEER, 'GetMachineId', config.machine_id, 's')


    def __enter__(self):
        self.start()
        return self


    def __exit__(self, *exc_info):
        self.close()


    def start(self):
        """ Open the transport, if necessary, and start the background
            threads that read and handle inbound messages.
        """

        if self.thread is not None:
            return

        if self.transport.is_open:
            pass
        else:
            self.transport.open()

        self.shutdown = False

        self.thread = threading.Thread(target=self.run)
        self.thread.daemon = True
        self.thread.start()

        for thread_number in range(self.worker_count):
            thread = threading.Thread(target=self._worker_main)
            thread.daemon = True
            thread.start()
            self.workers.append(thread)


    def close(self):
        """ Close the transport and stop the background threads. Any calls
            still waiting for a reply fail with
            :class:`kbus.transport.base.TransportConnectionError`.
        """

        self.shutdown = True
        self.transport.close()

        if self.thread is not None:
            self.thread.join()
            self.thread = None

        self.queue.put(None)
        self.workers = list()

        self.calls.fail_all(TransportConnectionError('connection closed'))


    def run(self):
        """ Read inbound messages until the connection closes. A corrupt
            message is logged and dropped; losing the transport fails every
            pending call.
        """

        while self.shutdown == False:
            try:
                message = self.transport.recv(self.poll_interval)
            except FramingError as e:
                logger.warning('dropping malformed message: {}', e)
                continue
            except TransportConnectionError as e:
                if self.shutdown == False:
                    logger.error('transport lost: {}', e)
                    self.calls.fail_all(e)
                break
            except Exception as e:
                logger.exception('transport read failed')
                self.calls.fail_all(TransportConnectionError('transport read failed: ' + str(e)))
                break

            if message is None:
                continue

            self.dispatch(message)


    def dispatch(self, message):
        """ Route one inbound *message*. This is the single place where
            pending calls are resolved.
        """

        type = message.type

        if type == MessageType.METHOD_RETURN or type == MessageType.ERROR:
            self.calls._handle_reply(message)
        elif type == MessageType.SIGNAL:
            self.signals.dispatch(message)
        elif type == MessageType.METHOD_CALL:
            self.queue.put(message)


    def send(self, message):
        """ Transmit a fully formed :class:`kbus.protocol.message.Message`
            without waiting for, or tracking, any reply.
        """

        self.transport.send(message)


    def call(self, destination, path, interface, member, args=(), signature=None, expect=None, timeout=None, flags=0):
        """ Invoke a remote method and block until it replies. The *expect*
            argument describes the reply body; see
            :func:`kbus.protocol.message.Message.unpack`. An error reply
            raises :class:`kbus.errors.BusError`, no reply within *timeout*
            seconds raises :class:`kbus.errors.TimedOut`.

            If the NO_REPLY_EXPECTED flag is set the call is sent and None
            is returned immediately.
        """

        pending = self.call_async(destination, path, interface, member, args, signature, flags)

        if pending is None:
            return None

        if timeout is None:
            timeout = self.timeout

        return pending.result(expect, timeout)


    def call_async(self, destination, path, interface, member, args=(), signature=None, flags=0):
        """ Send a method call and return its
            :class:`kbus.transport.session.PendingCall` without waiting.
        """

        message = Message.method_call(destination, path, interface, member,
                                      args, signature, flags, self.byteorder)
        return self.calls.send(message)


    def emit(self, path, interface, member, args=(), signature=None, destination=None):
        """ Broadcast a signal, or send it to a single *destination*.
        """

        message = Message.signal(path, interface, member, args, signature,
                                 destination, self.byteorder)
        self.transport.send(message)
        return message


    def subscribe(self, rule, callback, expect=None):
        """ Register *callback* for inbound signals matching *rule*, which
            is a :class:`kbus.protocol.match.MatchRule` or None for every
            signal. See :func:`kbus.transport.session.SignalSession.register`.
            The callback is held by weak reference.

            This is local filtering only; on a bus, use :func:`add_match` so
            the daemon routes the signals here in the first place.
        """

        return self.signals.register(rule, callback, expect)


    def unsubscribe(self, subscription):
        self.signals.unregister(subscription)


    def serve(self, interface, member, callback, signature=''):
        """ Handle inbound calls to *interface*.*member* with *callback*.
            The callback receives the decoded call arguments; its return
            value becomes the reply body, encoded per *signature*. For a
            signature holding more than one complete type the callback must
            return a sequence.

            Raising :class:`kbus.errors.BusError` sends that error back to
            the caller; any other exception is reported as
            ``org.freedesktop.DBus.Error.Failed``.
        """

        signatures.validate(signature)

        if callable(callback):
            pass
        else:
            raise TypeError('callback must be callable')

        with self.handlers_lock:
            self.handlers[(interface, member)] = (callback, signature)


    def with_path(self, destination, path, timeout=None):
        """ Return a :class:`kbus.stdintf.ObjectProxy` for the remote object
            at *path* owned by *destination*.
        """

        from .stdintf import ObjectProxy
        return ObjectProxy(self, destination, path, timeout)


    def hello(self):
        """ Register with the bus daemon, and remember the unique name it
            assigns to this connection.
        """

        name = self.call(fields.BUS_NAME, fields.BUS_PATH, fields.BUS_NAME, 'Hello', expect='s')
        self.unique_name = name
        return name


    def add_match(self, rule):
        """ Ask the bus daemon to route signals matching *rule* here.
        """

        self.call(fields.BUS_NAME, fields.BUS_PATH, fields.BUS_NAME, 'AddMatch', (str(rule),), 's', expect='')


    def remove_match(self, rule):
        self.call(fields.BUS_NAME, fields.BUS_PATH, fields.BUS_NAME, 'RemoveMatch', (str(rule),), 's', expect='')


    def _lookup(self, message):

        with self.handlers_lock:
            if message.interface is not None:
                return self.handlers.get((message.interface, message.member))

            # A call without an interface goes to any handler for the member.

            for key, handler in self.handlers.items():
                if key[1] == message.member:
                    return handler

        return None


    def _call_incoming(self, message):
        """ Invoke the handler for one inbound method call, and send the
            reply: the return value, or an error.
        """

        handler = self._lookup(message)

        if handler is None:
            text = 'no method %s.%s at %s' % (message.interface, message.member, message.path)
            reply = Message.error(message, fields.ERROR_UNKNOWN_METHOD, text)
        else:
            reply = self._invoke(message, *handler)

        if message.reply_expected:
            pass
        else:
            return

        try:
            self.transport.send(reply)
        except Error as e:
            logger.error('cannot reply to {!r}: {}', message, e)


    def _invoke(self, message, callback, signature):

        try:
            arguments = message.body
        except Error as e:
            return Message.error(message, fields.ERROR_INVALID_ARGS, str(e))

        try:
            result = callback(*arguments)
        except BusError as e:
            try:
                reply = Message.error(message, e.name, e.text)
                bytes(reply)
            except Error as problem:
                logger.error('handler for {}.{} raised an unsendable error: {}', message.interface, message.member, problem)
                return Message.error(message, fields.ERROR_FAILED, str(e))
            return reply
        except Exception as e:
            logger.exception('handler for {}.{} failed', message.interface, message.member)
            return Message.error(message, fields.ERROR_FAILED, str(e))

        count = len(signatures.split(signature))

        if count == 0:
            values = ()
        elif count == 1:
            values = (result,)
        else:
            values = tuple(result)

        try:
            reply = Message.method_return(message, values, signature)
            bytes(reply)
        except (Error, TypeError, ValueError) as e:
            logger.error('handler for {}.{} returned an unencodable value: {}', message.interface, message.member, e)
            return Message.error(message, fields.ERROR_FAILED, str(e))

        return reply


    def _worker_main(self):
        """ Handle inbound method calls until shutdown. Several threads run
            this method, so one slow handler does not hold up the others.
        """

        while self.shutdown == False:
            try:
                dequeued = self.queue.get(timeout=300)
            except queue.Empty:
                continue

            if dequeued is None:
                continue

            try:
                self._call_incoming(dequeued)
            except Exception:
                logger.exception('cannot handle {!r}', dequeued)

        # Wake the other workers so they notice the shutdown too.

        self.queue.put(None)


# end of class Connection



def _ping():
    return None


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
