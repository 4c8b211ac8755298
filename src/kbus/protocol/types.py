""" Python representations of wire values. Each class subclasses the
    matching Python native type, so decoded values compare equal to plain
    Python values, while still carrying the exact wire type they came from.
    The decoder always returns these classes; the encoder accepts them
    alongside plain Python values.

    Every class exposes a *type_signature*: a class attribute for the fixed
    scalar types, a property for containers whose signature depends on
    their contents. For containers the *signature* attribute describes the
    contents, following the usual bus-binding convention: the element
    signature for an :class:`Array`, the key and value signatures for a
    :class:`Dictionary`, the member signatures for a :class:`Struct`.
"""

from ..errors import InvalidSignature, TypeMismatchError
from . import names
from . import signature as signatures


class _Integer(int):

    type_signature = None
    minimum = None
    maximum = None

    def __new__(cls, value=0):

        value = int(value)

        if value < cls.minimum or value > cls.maximum:
            raise TypeMismatchError(cls.__name__ + ' range', value)

        return int.__new__(cls, value)


    def __repr__(self):
        return '%s(%d)' % (self.__class__.__name__, self)

    __str__ = int.__repr__



class Byte(_Integer):
    type_signature = 'y'
    minimum = 0
    maximum = 0xFF


class Int16(_Integer):
    type_signature = 'n'
    minimum = -0x8000
    maximum = 0x7FFF


class UInt16(_Integer):
    type_signature = 'q'
    minimum = 0
    maximum = 0xFFFF


class Int32(_Integer):
    type_signature = 'i'
    minimum = -0x80000000
    maximum = 0x7FFFFFFF


class UInt32(_Integer):
    type_signature = 'u'
    minimum = 0
    maximum = 0xFFFFFFFF


class Int64(_Integer):
    type_signature = 'x'
    minimum = -0x8000000000000000
    maximum = 0x7FFFFFFFFFFFFFFF


class UInt64(_Integer):
    type_signature = 't'
    minimum = 0
    maximum = 0xFFFFFFFFFFFFFFFF



class Boolean(int):
    """ A wire boolean. Python's bool cannot be subclassed, so this is an
        int restricted to 0 and 1 that compares equal to False and True.
    """

    type_signature = 'b'

    def __new__(cls, value=False):
        return int.__new__(cls, bool(value))


    def __repr__(self):
        return 'Boolean(%s)' % (bool(self))

    __str__ = __repr__



class Double(float):

    type_signature = 'd'

    def __repr__(self):
        return 'Double(%s)' % (float.__repr__(self))

    __str__ = float.__repr__



class String(str):

    type_signature = 's'

    def __repr__(self):
        return 'String(%s)' % (str.__repr__(self))

    __str__ = str.__str__



class ObjectPath(str):

    type_signature = 'o'

    def __new__(cls, value='/'):

        if names.is_object_path(value):
            pass
        else:
            raise TypeMismatchError('object path', value)

        return str.__new__(cls, value)


    def __repr__(self):
        return 'ObjectPath(%s)' % (str.__repr__(self))

    __str__ = str.__str__



class Signature(str):

    type_signature = 'g'

    def __new__(cls, value=''):
        signatures.validate(value)
        return str.__new__(cls, value)


    def __repr__(self):
        return 'Signature(%s)' % (str.__repr__(self))

    __str__ = str.__str__



class Array(list):
    """ An array of values sharing a single element type. The element
        *signature* may be omitted, in which case it is inferred from the
        contents when needed; an empty array needs an explicit signature to
        be encoded on its own.
    """

    def __init__(self, iterable=(), signature=None):

        list.__init__(self, iterable)

        if signature is not None:
            parsed = signatures.parse(signature)
            if len(parsed) != 1:
                raise InvalidSignature('array element must be a single complete type: ' + repr(signature))
            if parsed[0].code == '{':
                raise InvalidSignature('use Dictionary for dict entry arrays')

        self.signature = signature


    @property
    def type_signature(self):

        element = self.signature
        if element is None:
            element = signatures.common(self, 'array')

        return 'a' + element


    def __repr__(self):
        return 'Array(%s, signature=%s)' % (list.__repr__(self), repr(self.signature))



class ByteArray(bytes):
    """ An array of bytes, ``'ay'`` on the wire. Decoded byte arrays take
        this form so they compare equal to the :class:`bytes` they were
        encoded from.
    """

    type_signature = 'ay'
    signature = 'y'

    def __repr__(self):
        return 'ByteArray(%s)' % (bytes.__repr__(self))



class Struct(tuple):
    """ A fixed sequence of values of possibly differing types. The
        *signature* is the concatenation of the member signatures, without
        the enclosing parentheses.
    """

    def __new__(cls, iterable=(), signature=None):

        instance = tuple.__new__(cls, iterable)

        if signature is not None:
            parsed = signatures.parse('(' + signature + ')')
            if len(parsed[0].children) != len(instance):
                raise TypeMismatchError('%d struct members' % (len(parsed[0].children)), len(instance))

        instance.signature = signature
        return instance


    @property
    def type_signature(self):

        members = self.signature
        if members is None:
            if len(self) == 0:
                raise InvalidSignature('cannot infer the signature of an empty struct')
            members = ''.join(signatures.signature_of(member) for member in self)

        return '(' + members + ')'


    def __repr__(self):
        return 'Struct(%s, signature=%s)' % (tuple.__repr__(self), repr(self.signature))



class Dictionary(dict):
    """ A mapping, transmitted as an array of dict entries. The *signature*
        is the key signature followed by the value signature, for example
        ``'sv'``.
    """

    def __init__(self, mapping=(), signature=None):

        dict.__init__(self, mapping)

        if signature is not None:
            parsed = signatures.parse('a{' + signature + '}')
            entry = parsed[0].children[0]
            signature = entry.children[0].signature + entry.children[1].signature

        self.signature = signature


    @property
    def type_signature(self):

        entry = self.signature
        if entry is None:
            key = signatures.common(self.keys(), 'dictionary key')
            value = signatures.common(self.values(), 'dictionary value')
            entry = key + value

        return 'a{' + entry + '}'


    def __repr__(self):
        return 'Dictionary(%s, signature=%s)' % (dict.__repr__(self), repr(self.signature))



# Fixed scalar wrapper for each basic type code.

classes = {
    'y': Byte,
    'b': Boolean,
    'n': Int16,
    'q': UInt16,
    'i': Int32,
    'u': UInt32,
    'x': Int64,
    't': UInt64,
    'd': Double,
    's': String,
    'o': ObjectPath,
    'g': Signature,
}


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
