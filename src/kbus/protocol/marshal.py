""" The value codec: the one place that knows the wire byte layout.

    Every value is written at its natural size after padding the cursor to
    the alignment its type code requires. Alignment is always relative to
    the start of the message; a cursor that starts partway into a message
    is given that position as its *offset*. Strings carry a length prefix
    and a trailing NUL; arrays carry a byte-length prefix that is
    backpatched once the elements are written, and pad to their element
    alignment even when empty.

    Both directions dispatch on the type code through explicit tables,
    one method per code.
"""

import struct

from ..errors import FramingError, InvalidSignature, TypeMismatchError, UnexpectedEndOfData
from .fields import BIG, LITTLE, MAX_ARRAY_LENGTH, MAX_DEPTH
from . import names
from . import signature as signatures
from . import types
from .variant import Variant


_struct_order = {LITTLE: '<', BIG: '>'}

# Format character, minimum and maximum for each integer type code.

_integers = {
    'y': ('B', 0, 0xFF),
    'n': ('h', -0x8000, 0x7FFF),
    'q': ('H', 0, 0xFFFF),
    'i': ('i', -0x80000000, 0x7FFFFFFF),
    'u': ('I', 0, 0xFFFFFFFF),
    'x': ('q', -0x8000000000000000, 0x7FFFFFFFFFFFFFFF),
    't': ('Q', 0, 0xFFFFFFFFFFFFFFFF),
}


def _order(byteorder):

    try:
        return _struct_order[byteorder]
    except KeyError:
        raise FramingError('unknown byte order: ' + repr(byteorder))



def _declared(value):
    """ Return the wire signature a value declares for itself, if any.
        Plain Python values declare nothing.
    """

    try:
        declared = value.type_signature
    except (AttributeError, InvalidSignature):
        return None

    if isinstance(declared, str):
        return declared

    return None



class Marshaller:
    """ Encode values into a growing buffer. The *byteorder* is ``'l'`` or
        ``'B'``; the *offset* is the position of the first byte of this
        buffer within the enclosing message, used only for alignment.
    """

    def __init__(self, byteorder=LITTLE, offset=0):

        self.byteorder = byteorder
        self.order = _order(byteorder)
        self.offset = offset
        self.buffer = bytearray()
        self.depth = 0

        self._writers = {
            'y': self._write_integer,
            'n': self._write_integer,
            'q': self._write_integer,
            'i': self._write_integer,
            'u': self._write_integer,
            'x': self._write_integer,
            't': self._write_integer,
            'b': self._write_boolean,
            'd': self._write_double,
            's': self._write_string,
            'o': self._write_object_path,
            'g': self._write_signature,
            'a': self._write_array,
            '(': self._write_struct,
            'v': self._write_variant,
        }


    @property
    def position(self):
        return self.offset + len(self.buffer)


    def align(self, alignment):

        padding = -self.position % alignment
        if padding:
            self.buffer.extend(b'\x00' * padding)


    def append(self, signature, value):
        """ Encode a single *value* described by *signature*, which must be
            exactly one complete type.
        """

        self.write(signatures.single(signature), value)


    def append_all(self, signature, values):
        """ Encode a sequence of *values*, one per complete type in
            *signature*.
        """

        parsed = signatures.parse(signature)
        values = tuple(values)

        if len(parsed) != len(values):
            raise TypeMismatchError('%d values for signature %s' % (len(parsed), repr(signature)), len(values))

        for complete, value in zip(parsed, values):
            self.write(complete, value)


    def write(self, complete, value):
        """ Encode *value* as the :class:`SignatureType` *complete*.
        """

        # Any value may be boxed into a variant slot; everywhere else a wire
        # type must match the signature exactly.

        if complete.code != 'v':
            declared = _declared(value)
            if declared is not None and declared != complete.signature:
                raise TypeMismatchError(repr(complete.signature), declared, 'encoding ' + repr(value))

        self._writers[complete.code](complete, value)


    def _pack(self, format, value):
        self.buffer.extend(struct.pack(self.order + format, value))


    def _write_integer(self, complete, value):

        code = complete.code
        format, minimum, maximum = _integers[code]

        if isinstance(value, int) and not isinstance(value, bool):
            pass
        else:
            raise TypeMismatchError(signatures.NAMES[code], value)

        if value < minimum or value > maximum:
            raise TypeMismatchError('%s in range %d:%d' % (signatures.NAMES[code], minimum, maximum), value)

        self.align(complete.alignment)
        self._pack(format, value)


    def _write_boolean(self, complete, value):

        if isinstance(value, int) and value in (0, 1):
            pass
        else:
            raise TypeMismatchError('boolean', value)

        self.align(4)
        self._pack('I', int(value))


    def _write_double(self, complete, value):

        if isinstance(value, (int, float)) and not isinstance(value, bool):
            pass
        else:
            raise TypeMismatchError('double', value)

        self.align(8)
        self._pack('d', float(value))


    def _write_text(self, encoded, prefix):

        self._pack(prefix, len(encoded))
        self.buffer.extend(encoded)
        self.buffer.append(0)


    def _write_string(self, complete, value):

        if isinstance(value, str):
            pass
        else:
            raise TypeMismatchError('string', value)

        if '\x00' in value:
            raise TypeMismatchError('string without NUL characters', value)

        self.align(4)
        self._write_text(value.encode('utf-8'), 'I')


    def _write_object_path(self, complete, value):

        if names.is_object_path(value):
            pass
        else:
            raise TypeMismatchError('object path', value)

        self.align(4)
        self._write_text(value.encode('ascii'), 'I')


    def _write_signature(self, complete, value):

        if isinstance(value, str):
            pass
        else:
            raise TypeMismatchError('signature', value)

        signatures.validate(value)
        self._write_text(value.encode('ascii'), 'B')


    def _enter(self):

        self.depth += 1
        if self.depth > MAX_DEPTH:
            raise FramingError('value nesting exceeds %d levels' % (MAX_DEPTH))


    def _write_array(self, complete, value):

        element = complete.children[0]

        if element.code == '{':
            try:
                items = value.items()
            except AttributeError:
                raise TypeMismatchError('a mapping for ' + repr(complete.signature), value)
        elif isinstance(value, (bytes, bytearray)) and element.code == 'y':
            items = None
        elif isinstance(value, (str, bytes, bytearray, dict)):
            raise TypeMismatchError('a sequence for ' + repr(complete.signature), value)
        else:
            items = value

        self._enter()
        self.align(4)
        slot = len(self.buffer)
        self._pack('I', 0)

        # The length excludes the padding between the length prefix and the
        # first element, which is present even for an empty array.

        self.align(element.alignment)
        start = len(self.buffer)

        if items is None:
            self.buffer.extend(value)
        elif element.code == '{':
            key_type, value_type = element.children
            for key, item in items:
                self.align(8)
                self.write(key_type, key)
                self.write(value_type, item)
        else:
            try:
                iterator = iter(items)
            except TypeError:
                raise TypeMismatchError('a sequence for ' + repr(complete.signature), value)
            for item in iterator:
                self.write(element, item)

        length = len(self.buffer) - start

        if length > MAX_ARRAY_LENGTH:
            raise FramingError('array length %d exceeds %d bytes' % (length, MAX_ARRAY_LENGTH))

        struct.pack_into(self.order + 'I', self.buffer, slot, length)
        self.depth -= 1


    def _write_struct(self, complete, value):

        if isinstance(value, (str, bytes, bytearray, dict)):
            raise TypeMismatchError('a sequence for ' + repr(complete.signature), value)

        try:
            members = tuple(value)
        except TypeError:
            raise TypeMismatchError('a sequence for ' + repr(complete.signature), value)

        if len(members) != len(complete.children):
            raise TypeMismatchError('%d members for %s' % (len(complete.children), repr(complete.signature)), len(members))

        self._enter()
        self.align(8)

        for member_type, member in zip(complete.children, members):
            self.write(member_type, member)

        self.depth -= 1


    def _write_variant(self, complete, value):

        if isinstance(value, Variant):
            contained = value.signature
            value = value.value
        else:
            contained = signatures.signature_of(value)

        contained_type = signatures.single(contained)

        self._enter()
        self._write_signature(None, contained)
        self.write(contained_type, value)
        self.depth -= 1


# end of class Marshaller



class Unmarshaller:
    """ Decode values from *data*. The *offset* is the position of the first
        byte of *data* within the enclosing message, used only for
        alignment. Every read is bounds-checked; running out of data raises
        :class:`kbus.errors.UnexpectedEndOfData`, and any other malformed
        content raises :class:`kbus.errors.FramingError`.
    """

    def __init__(self, data, byteorder=LITTLE, offset=0):

        self.data = bytes(data)
        self.byteorder = byteorder
        self.order = _order(byteorder)
        self.offset = offset
        self.index = 0
        self.end = len(self.data)
        self.depth = 0

        self._readers = {
            'y': self._read_integer,
            'n': self._read_integer,
            'q': self._read_integer,
            'i': self._read_integer,
            'u': self._read_integer,
            'x': self._read_integer,
            't': self._read_integer,
            'b': self._read_boolean,
            'd': self._read_double,
            's': self._read_string,
            'o': self._read_object_path,
            'g': self._read_signature,
            'a': self._read_array,
            '(': self._read_struct,
            'v': self._read_variant,
        }


    @property
    def position(self):
        return self.offset + self.index


    @property
    def remaining(self):
        return self.end - self.index


    def take(self, count):

        if self.index + count > self.end:
            raise UnexpectedEndOfData('need %d bytes at offset %d, %d available' % (count, self.position, self.end - self.index))

        chunk = self.data[self.index:self.index + count]
        self.index += count
        return chunk


    def align(self, alignment):

        padding = -self.position % alignment

        if padding:
            chunk = self.take(padding)
            if chunk.count(0) != padding:
                raise FramingError('non-zero padding at offset %d' % (self.position - padding))


    def read(self, complete):
        """ Decode one value of the :class:`SignatureType` *complete*.
        """

        return self._readers[complete.code](complete)


    def read_all(self, signature):
        """ Decode one value per complete type in *signature*.
        """

        return [self.read(complete) for complete in signatures.parse(signature)]


    def _unpack(self, format, size):

        chunk = self.take(size)
        return struct.unpack(self.order + format, chunk)[0]


    def _read_integer(self, complete):

        format = _integers[complete.code][0]

        self.align(complete.alignment)
        value = self._unpack(format, struct.calcsize(self.order + format))
        return types.classes[complete.code](value)


    def _read_boolean(self, complete):

        self.align(4)
        value = self._unpack('I', 4)

        if value > 1:
            raise FramingError('invalid boolean value %d at offset %d' % (value, self.position - 4))

        return types.Boolean(value)


    def _read_double(self, complete):

        self.align(8)
        return types.Double(self._unpack('d', 8))


    def _read_text(self, prefix, size):

        length = self._unpack(prefix, size)
        raw = self.take(length)
        terminator = self.take(1)

        if terminator != b'\x00':
            raise FramingError('string at offset %d is not NUL terminated' % (self.position - length - 1))

        if b'\x00' in raw:
            raise FramingError('string at offset %d contains a NUL character' % (self.position - length - 1))

        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise FramingError('invalid UTF-8 in string: ' + str(e))


    def _read_string(self, complete):

        self.align(4)
        return types.String(self._read_text('I', 4))


    def _read_object_path(self, complete):

        self.align(4)
        text = self._read_text('I', 4)

        if names.is_object_path(text):
            pass
        else:
            raise FramingError('invalid object path: ' + repr(text))

        return types.ObjectPath(text)


    def _read_signature(self, complete):

        text = self._read_text('B', 1)

        try:
            return types.Signature(text)
        except InvalidSignature as e:
            raise FramingError('invalid signature in data: ' + str(e))


    def _enter(self):

        self.depth += 1
        if self.depth > MAX_DEPTH:
            raise FramingError('value nesting exceeds %d levels' % (MAX_DEPTH))


    def _read_array(self, complete):

        element = complete.children[0]

        self.align(4)
        length = self._unpack('I', 4)

        if length > MAX_ARRAY_LENGTH:
            raise FramingError('array length %d exceeds %d bytes' % (length, MAX_ARRAY_LENGTH))

        self._enter()
        self.align(element.alignment)

        stop = self.index + length
        if stop > self.end:
            raise UnexpectedEndOfData('array of %d bytes at offset %d overruns the data' % (length, self.position))

        if element.code == 'y':
            decoded = types.ByteArray(self.take(length))
            self.depth -= 1
            return decoded

        # Elements are confined to the declared length.

        outer_end = self.end
        self.end = stop

        try:
            if element.code == '{':
                key_type, value_type = element.children
                decoded = types.Dictionary(signature=key_type.signature + value_type.signature)
                while self.index < stop:
                    self.align(8)
                    key = self.read(key_type)
                    decoded[key] = self.read(value_type)
            else:
                decoded = types.Array(signature=element.signature)
                while self.index < stop:
                    decoded.append(self.read(element))
        finally:
            self.end = outer_end

        self.depth -= 1
        return decoded


    def _read_struct(self, complete):

        self._enter()
        self.align(8)

        members = [self.read(member) for member in complete.children]
        decoded = types.Struct(members, complete.signature[1:-1])

        self.depth -= 1
        return decoded


    def _read_variant(self, complete):

        self._enter()
        contained = self._read_signature(None)

        parsed = signatures.parse(contained)
        if len(parsed) != 1:
            raise FramingError('variant signature must be a single complete type: ' + repr(contained))

        value = self.read(parsed[0])
        self.depth -= 1

        return Variant._from_wire(contained, value)


# end of class Unmarshaller



class Reader:
    """ A typed cursor over a message body with a declared *signature*.
        Each :func:`read` decodes the next complete type, after checking that
        it is compatible with what the caller asked for; a mismatch raises
        :class:`kbus.errors.TypeMismatchError` and leaves the cursor where
        it was, so the caller may try a different target type.
    """

    def __init__(self, signature, data, byteorder=LITTLE, offset=0):

        self.signature = signature
        self.types = signatures.parse(signature)
        self.unmarshaller = Unmarshaller(data, byteorder, offset)
        self.count = 0


    def __iter__(self):

        while self.count < len(self.types):
            yield self.read()


    @property
    def remaining(self):
        """ The signatures of the complete types not yet read.
        """

        return [complete.signature for complete in self.types[self.count:]]


    def peek(self):
        """ Return the signature of the next complete type, or None at the
            end of the body.
        """

        try:
            return self.types[self.count].signature
        except IndexError:
            return None


    def read(self, expected=None):

        try:
            complete = self.types[self.count]
        except IndexError:
            raise TypeMismatchError(signatures.describe(expected), 'end of body')

        if signatures.compatible(expected, complete.signature):
            pass
        else:
            raise TypeMismatchError(signatures.describe(expected), complete.signature, 'argument %d' % (self.count))

        value = self.unmarshaller.read(complete)
        self.count += 1
        return value


    def read_all(self):
        """ Decode every remaining value, and confirm that the body holds
            nothing beyond them.
        """

        values = list(self)
        self.finish()
        return values


    def finish(self):

        if self.count < len(self.types):
            raise TypeMismatchError('end of body', self.remaining)

        if self.unmarshaller.remaining:
            raise FramingError('%d unexpected bytes after body' % (self.unmarshaller.remaining))


# end of class Reader



def encode(signature, values, byteorder=LITTLE, offset=0):
    """ Encode *values*, one per complete type in *signature*, and return
        the bytes. The *offset* is the position within the enclosing
        message where these bytes will be placed.
    """

    marshaller = Marshaller(byteorder, offset)
    marshaller.append_all(signature, values)
    return bytes(marshaller.buffer)



def decode(signature, data, byteorder=LITTLE, offset=0):
    """ Decode *data* as the values described by *signature*, returning a
        list with one value per complete type. Bytes left over after the
        last value are an error.
    """

    unmarshaller = Unmarshaller(data, byteorder, offset)
    values = unmarshaller.read_all(signature)

    if unmarshaller.remaining:
        raise FramingError('%d unexpected bytes after %s' % (unmarshaller.remaining, repr(signature)))

    return values


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
