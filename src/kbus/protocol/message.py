""" A class representation of a bus message: a method call, a method
    return, an error, or a signal.

    On the wire a message is a fixed 12 byte primary header (endianness,
    type, flags, protocol version, body length, serial), an array of header
    fields ``a(yv)``, padding to an 8 byte boundary, and the body. The body
    of an inbound message is left as raw bytes until the consumer states, or
    trusts, the type it expects.
"""

import itertools
import struct
import threading

from ..errors import FramingError, TypeMismatchError, UnexpectedEndOfData
from .fields import (
    BIG,
    HEADER_SIGNATURES,
    LITTLE,
    MAX_MESSAGE_LENGTH,
    PROTOCOL_VERSION,
    REQUIRED_FIELDS,
    Flags,
    HeaderField,
    MessageType,
)
from . import marshal
from . import names
from . import signature as signatures
from . import types
from .variant import Variant


# Header field attribute names, in the order the fields are emitted.

_attributes = (
    (HeaderField.PATH, 'path'),
    (HeaderField.INTERFACE, 'interface'),
    (HeaderField.MEMBER, 'member'),
    (HeaderField.ERROR_NAME, 'error_name'),
    (HeaderField.REPLY_SERIAL, 'reply_serial'),
    (HeaderField.DESTINATION, 'destination'),
    (HeaderField.SENDER, 'sender'),
    (HeaderField.SIGNATURE, 'signature'),
)

_validators = {
    HeaderField.PATH: names.validate_object_path,
    HeaderField.INTERFACE: names.validate_interface,
    HeaderField.MEMBER: names.validate_member,
    HeaderField.ERROR_NAME: names.validate_error_name,
    HeaderField.DESTINATION: names.validate_bus_name,
    HeaderField.SENDER: names.validate_bus_name,
}

_attribute_names = dict(_attributes)

_primary = 'yyyyuu'
_fields = 'a(yv)'


class Message:
    """ The :class:`Message` is the complete envelope around a body. The
        header fields are attributes: *path*, *interface*, *member*,
        *error_name*, *reply_serial*, *destination*, *sender*, and the body
        *signature*. If no signature is given it is inferred from the *body*
        values.

        Every message is assigned a serial number from a process-wide
        counter when it is constructed, unless one is supplied.

        :ivar type: A :class:`kbus.protocol.fields.MessageType`.
        :ivar flags: A :class:`kbus.protocol.fields.Flags` value.
        :ivar serial: The serial number, unique within this process.
        :ivar byteorder: ``'l'`` or ``'B'``, the endianness used on the wire.
    """

    valid_types = set((
        MessageType.METHOD_CALL,
        MessageType.METHOD_RETURN,
        MessageType.ERROR,
        MessageType.SIGNAL,
    ))

    def __init__(self, type, path=None, interface=None, member=None,
                 error_name=None, reply_serial=None, destination=None,
                 sender=None, signature=None, body=(), flags=0, serial=None,
                 byteorder=LITTLE):

        try:
            type = MessageType(type)
        except ValueError:
            raise FramingError('invalid message type: ' + repr(type))

        if type in self.valid_types:
            pass
        else:
            raise FramingError('invalid message type: ' + repr(type))

        if byteorder in (LITTLE, BIG):
            pass
        else:
            raise FramingError('invalid byte order: ' + repr(byteorder))

        body = tuple(body)

        if signature is None:
            signature = signatures.signature_of_values(body)
        else:
            signatures.validate(signature)

        if serial is None:
            serial = _serial_next()

        self.type = type
        self.flags = Flags(flags)
        self.serial = serial
        self.byteorder = byteorder

        self.path = path
        self.interface = interface
        self.member = member
        self.error_name = error_name
        self.reply_serial = reply_serial
        self.destination = destination
        self.sender = sender
        self.signature = signature
        self.unix_fds = None

        self._body = body
        self.raw_body = None
        self.parts = None

        self._check()


    def _check(self):
        """ Validate the header fields: names must be well formed, and the
            fields required for this message type must be present.
        """

        for code, attribute in _attributes:
            value = getattr(self, attribute)
            if value is None:
                continue

            try:
                validator = _validators[code]
            except KeyError:
                continue

            validator(value)

        for code in REQUIRED_FIELDS[self.type]:
            attribute = _attribute_names[code]
            if getattr(self, attribute) is None:
                raise FramingError('%s message requires a %s header field' % (self.type.name, attribute))

        if self.reply_serial is not None and self.reply_serial == 0:
            raise FramingError('reply serial must be non-zero')

        if self.serial < 1 or self.serial > _serial_max:
            raise FramingError('serial out of range: ' + repr(self.serial))


    @classmethod
    def method_call(cls, destination, path, interface, member, args=(), signature=None, flags=0, byteorder=LITTLE):
        """ Construct a method call. The *interface* may be None, though
            calls are normally addressed to a specific interface.
        """

        return cls(MessageType.METHOD_CALL, path=path, interface=interface,
                   member=member, destination=destination, signature=signature,
                   body=args, flags=flags, byteorder=byteorder)


    @classmethod
    def method_return(cls, call, args=(), signature=None):
        """ Construct the successful reply to the method *call*.
        """

        return cls(MessageType.METHOD_RETURN, reply_serial=call.serial,
                   destination=call.sender, signature=signature, body=args,
                   flags=Flags.NO_REPLY_EXPECTED, byteorder=call.byteorder)


    @classmethod
    def error(cls, call, name, text=None):
        """ Construct an error reply to the method *call*. The *text*, if
            provided, is the single string argument of the body.
        """

        if text is None:
            body = ()
        else:
            body = (str(text),)

        return cls(MessageType.ERROR, error_name=name, reply_serial=call.serial,
                   destination=call.sender, body=body,
                   flags=Flags.NO_REPLY_EXPECTED, byteorder=call.byteorder)


    @classmethod
    def signal(cls, path, interface, member, args=(), signature=None, destination=None, byteorder=LITTLE):

        return cls(MessageType.SIGNAL, path=path, interface=interface,
                   member=member, destination=destination, signature=signature,
                   body=args, flags=Flags.NO_REPLY_EXPECTED, byteorder=byteorder)


    @property
    def reply_expected(self):
        return self.type == MessageType.METHOD_CALL and not (self.flags & Flags.NO_REPLY_EXPECTED)


    def __bytes__(self):
        self._finalize()
        return self.parts


    def __iter__(self):
        """ Iterating over a message yields its multipart representation,
            which is a single frame holding the complete encoded message.
        """

        self._finalize()
        return iter((self.parts,))


    def __repr__(self):

        shown = list()
        for code, attribute in _attributes:
            value = getattr(self, attribute)
            if value is None or value == '':
                continue
            shown.append('%s=%s' % (attribute, repr(str(value))))

        return '<Message %s serial=%d %s>' % (self.type.name, self.serial, ' '.join(shown))


    def _finalize(self):
        """ Encode this :class:`Message`, caching the bytes for subsequent
            transmission.
        """

        if self.parts is not None:
            return

        if self.raw_body is None:
            body = marshal.encode(self.signature, self._body, self.byteorder)
        else:
            body = self.raw_body

        fields = list()

        for code, attribute in _attributes:
            value = getattr(self, attribute)
            if value is None:
                continue

            # An absent signature field means an empty body.

            if code == HeaderField.SIGNATURE and value == '':
                continue

            variant = Variant._from_wire(HEADER_SIGNATURES[code], value)
            fields.append(types.Struct((types.Byte(code), variant), 'yv'))

        primary = (ord(self.byteorder), int(self.type), int(self.flags), PROTOCOL_VERSION, len(body), self.serial)

        marshaller = marshal.Marshaller(self.byteorder)
        marshaller.append_all(_primary, primary)
        marshaller.append(_fields, fields)
        marshaller.align(8)

        parts = bytes(marshaller.buffer) + body

        if len(parts) > MAX_MESSAGE_LENGTH:
            raise FramingError('message length %d exceeds %d bytes' % (len(parts), MAX_MESSAGE_LENGTH))

        self.parts = parts


    @classmethod
    def from_bytes(cls, data):
        """ Decode one complete message from *data*. The header is parsed and
            validated; the body is kept as raw bytes for later decoding via
            :func:`reader`, :func:`unpack`, or :attr:`body`.
        """

        data = bytes(data)

        if len(data) < 16:
            raise UnexpectedEndOfData('message header needs 16 bytes, %d available' % (len(data)))

        byteorder = chr(data[0])

        if byteorder in (LITTLE, BIG):
            pass
        else:
            raise FramingError('invalid endianness marker: ' + repr(data[0:1]))

        unmarshaller = marshal.Unmarshaller(data, byteorder)
        primary = unmarshaller.read_all(_primary)
        marker, type, flags, version, body_length, serial = primary

        if version != PROTOCOL_VERSION:
            raise FramingError('unsupported protocol version %d' % (version))

        try:
            type = MessageType(type)
        except ValueError:
            raise FramingError('unknown message type %d' % (type))

        if type not in cls.valid_types:
            raise FramingError('invalid message type %d' % (type))

        if serial == 0:
            raise FramingError('message serial must be non-zero')

        fields = unmarshaller.read(signatures.single(_fields))
        unmarshaller.align(8)

        body_start = unmarshaller.index
        total = body_start + body_length

        if total > MAX_MESSAGE_LENGTH:
            raise FramingError('message length %d exceeds %d bytes' % (total, MAX_MESSAGE_LENGTH))

        if len(data) < total:
            raise UnexpectedEndOfData('message needs %d bytes, %d available' % (total, len(data)))

        if len(data) > total:
            raise FramingError('%d unexpected bytes after message' % (len(data) - total))

        header = dict()

        for code, variant in fields:
            try:
                code = HeaderField(code)
            except ValueError:
                # Unknown header fields must be accepted and ignored.
                continue

            expected = HEADER_SIGNATURES[code]

            if variant.signature != expected:
                raise FramingError('header field %s must be %s, not %s' % (code.name, repr(expected), repr(variant.signature)))

            header[code] = variant.value

        message = cls.__new__(cls)

        message.type = type
        message.flags = Flags(flags & 0x7)
        message.serial = int(serial)
        message.byteorder = byteorder

        for code, attribute in _attributes:
            value = header.get(code)
            if value is None:
                pass
            elif code == HeaderField.REPLY_SERIAL:
                value = int(value)
            else:
                value = str(value)
            setattr(message, attribute, value)

        message.unix_fds = header.get(HeaderField.UNIX_FDS)

        if message.signature is None:
            message.signature = ''

        if message.signature == '' and body_length != 0:
            raise FramingError('message has %d body bytes and no signature' % (body_length))

        message._body = None
        message.raw_body = data[body_start:total]
        message.parts = data

        message._check()
        return message


    def reader(self):
        """ Return a :class:`kbus.protocol.marshal.Reader` positioned at the
            start of the body.
        """

        if self.raw_body is None:
            raw = marshal.encode(self.signature, self._body, self.byteorder)
        else:
            raw = self.raw_body

        return marshal.Reader(self.signature, raw, self.byteorder)


    @property
    def body(self):
        """ The body values, decoded dynamically according to the declared
            signature.
        """

        if self._body is None:
            self._body = tuple(self.reader().read_all())

        return self._body


    def unpack(self, expect=None):
        """ Decode the body for a caller expecting a particular shape.

            * ``None``: no checking. Returns None for an empty body, the
              value for a single-argument body, or a tuple.
            * A signature string: the body signature must match exactly;
              the return value is shaped as above.
            * A tuple or list of targets: one target per argument, each a
              signature string, wire class, or native type; returns a tuple.
            * A class with a ``from_message`` method, such as a
              :class:`kbus.protocol.match.SignalArgs` subclass: returns
              ``expect.from_message(self)``.
            * Any other single target (wire class or native type): the
              body must be exactly one compatible argument; returns it.

            Any disagreement raises :class:`kbus.errors.TypeMismatchError`.
        """

        if expect is None:
            return _shape(self.body)

        if isinstance(expect, str):
            signatures.validate(expect)
            if expect != self.signature:
                raise TypeMismatchError(repr(expect), self.signature, 'message body')
            return _shape(self.body)

        if isinstance(expect, (tuple, list)):
            targets = tuple(expect)
        elif hasattr(expect, 'from_message'):
            return expect.from_message(self)
        else:
            targets = (expect,)

        reader = self.reader()

        if len(reader.types) != len(targets):
            wanted = ', '.join(signatures.describe(target) for target in targets)
            raise TypeMismatchError('body of (%s)' % (wanted), self.signature, 'message body')

        values = tuple(reader.read(target) for target in targets)
        reader.finish()

        if isinstance(expect, (tuple, list)):
            return values

        return values[0]


# end of class Message



_struct_prefix = {LITTLE: '<', BIG: '>'}


def _shape(values):

    if len(values) == 0:
        return None

    if len(values) == 1:
        return values[0]

    return tuple(values)



def message_length(prefix):
    """ Return the total length of the message whose first 16 bytes are
        *prefix*. Stream transports use this to know how much to read.
    """

    if len(prefix) < 16:
        raise UnexpectedEndOfData('message length needs 16 bytes, %d available' % (len(prefix)))

    byteorder = chr(prefix[0])

    try:
        order = _struct_prefix[byteorder]
    except KeyError:
        raise FramingError('invalid endianness marker: ' + repr(bytes(prefix[0:1])))

    body_length = struct.unpack(order + 'I', bytes(prefix[4:8]))[0]
    fields_length = struct.unpack(order + 'I', bytes(prefix[12:16]))[0]

    header_length = 16 + fields_length
    header_length += -header_length % 8

    return header_length + body_length



_serial_min = 1
_serial_max = 0xFFFFFFFF
_serial_lock = threading.Lock()
_serial_ticker = itertools.count(_serial_min)


def _serial_next():
    """ Return the next serial number for a newly constructed message.
        Serials are non-zero 32 bit values; the counter wraps back to one.
    """

    global _serial_ticker

    with _serial_lock:
        serial = next(_serial_ticker)

        if serial > _serial_max:
            _serial_ticker = itertools.count(_serial_min)
            serial = next(_serial_ticker)

    return serial


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
