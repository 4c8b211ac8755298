""" Type signatures: validation, decomposition into complete types, and
    composition from values. A signature is a string of single-character
    type codes; containers nest. Everything here is pure and stateless,
    apart from a cache of parsed signatures.
"""

from ..errors import InvalidSignature, TypeMismatchError
from .fields import MAX_ARRAY_DEPTH, MAX_DEPTH, MAX_SIGNATURE_LENGTH, MAX_STRUCT_DEPTH


# Basic types may be dictionary keys; fixed types have a constant size.

BASIC = 'ybnqiuxtdsog'
FIXED = 'ybnqiuxtd'
CONTAINERS = 'a({v'

ALIGNMENT = {
    'y': 1,
    'b': 4,
    'n': 2,
    'q': 2,
    'i': 4,
    'u': 4,
    'x': 8,
    't': 8,
    'd': 8,
    's': 4,
    'o': 4,
    'g': 1,
    'a': 4,
    '(': 8,
    '{': 8,
    'v': 1,
}

NAMES = {
    'y': 'byte',
    'b': 'boolean',
    'n': 'int16',
    'q': 'uint16',
    'i': 'int32',
    'u': 'uint32',
    'x': 'int64',
    't': 'uint64',
    'd': 'double',
    's': 'string',
    'o': 'object path',
    'g': 'signature',
    'a': 'array',
    '(': 'struct',
    '{': 'dict entry',
    'v': 'variant',
}


class SignatureType:
    """ One complete type within a signature. The *code* is the leading
        type code; *children* holds the element type of an array, the
        members of a struct, or the key and value of a dict entry.
    """

    __slots__ = ('code', 'children', 'signature', 'alignment')

    def __init__(self, code, children=()):

        self.code = code
        self.children = tuple(children)
        self.alignment = ALIGNMENT[code]

        if code == 'a':
            signature = 'a' + self.children[0].signature
        elif code == '(':
            signature = '(' + ''.join(child.signature for child in self.children) + ')'
        elif code == '{':
            signature = '{' + self.children[0].signature + self.children[1].signature + '}'
        else:
            signature = code

        self.signature = signature


    def __eq__(self, other):

        if isinstance(other, SignatureType):
            return self.signature == other.signature

        return NotImplemented


    def __hash__(self):
        return hash(self.signature)


    def __repr__(self):
        return 'SignatureType(%s)' % (repr(self.signature))


# end of class SignatureType



_cache = dict()


def parse(signature):
    """ Parse a signature into a tuple of :class:`SignatureType` instances,
        one for each complete type at the top level. Raises
        :class:`kbus.errors.InvalidSignature` if the signature is malformed.
    """

    try:
        return _cache[signature]
    except KeyError:
        pass
    except TypeError:
        raise InvalidSignature('signature must be a string, not ' + repr(signature))

    if isinstance(signature, str):
        pass
    else:
        raise InvalidSignature('signature must be a string, not ' + repr(signature))

    if len(signature) > MAX_SIGNATURE_LENGTH:
        raise InvalidSignature('signature exceeds %d characters' % (MAX_SIGNATURE_LENGTH))

    parsed = list()
    index = 0
    length = len(signature)

    while index < length:
        complete, index = _parse_one(signature, index, 0, 0, False)
        parsed.append(complete)

    parsed = tuple(parsed)
    _cache[signature] = parsed
    return parsed



def _parse_one(signature, index, arrays, structs, array_element):

    if index >= len(signature):
        raise InvalidSignature('incomplete signature: ' + repr(signature))

    code = signature[index]

    if code in BASIC or code == 'v':
        return SignatureType(code), index + 1

    if code == 'a':
        arrays += 1
        if arrays > MAX_ARRAY_DEPTH:
            raise InvalidSignature('array nesting exceeds %d: %s' % (MAX_ARRAY_DEPTH, repr(signature)))
        if arrays + structs > MAX_DEPTH:
            raise InvalidSignature('nesting exceeds %d: %s' % (MAX_DEPTH, repr(signature)))

        if index + 1 >= len(signature):
            raise InvalidSignature('array with no element type: ' + repr(signature))

        element, index = _parse_one(signature, index + 1, arrays, structs, True)
        return SignatureType('a', (element,)), index

    if code == '(':
        structs += 1
        if structs > MAX_STRUCT_DEPTH:
            raise InvalidSignature('struct nesting exceeds %d: %s' % (MAX_STRUCT_DEPTH, repr(signature)))
        if arrays + structs > MAX_DEPTH:
            raise InvalidSignature('nesting exceeds %d: %s' % (MAX_DEPTH, repr(signature)))

        index += 1
        members = list()

        while True:
            if index >= len(signature):
                raise InvalidSignature('unbalanced parentheses: ' + repr(signature))

            if signature[index] == ')':
                break

            member, index = _parse_one(signature, index, arrays, structs, False)
            members.append(member)

        if len(members) == 0:
            raise InvalidSignature('empty struct: ' + repr(signature))

        return SignatureType('(', members), index + 1

    if code == '{':
        if array_element == False:
            raise InvalidSignature('dict entry outside of an array: ' + repr(signature))

        structs += 1
        if structs > MAX_STRUCT_DEPTH:
            raise InvalidSignature('struct nesting exceeds %d: %s' % (MAX_STRUCT_DEPTH, repr(signature)))
        if arrays + structs > MAX_DEPTH:
            raise InvalidSignature('nesting exceeds %d: %s' % (MAX_DEPTH, repr(signature)))

        if index + 1 < len(signature) and signature[index + 1] in BASIC:
            pass
        else:
            raise InvalidSignature('dict entry key must be a basic type: ' + repr(signature))

        key, index = _parse_one(signature, index + 1, arrays, structs, False)

        if index < len(signature) and signature[index] == '}':
            raise InvalidSignature('dict entry needs a key and a value: ' + repr(signature))

        value, index = _parse_one(signature, index, arrays, structs, False)

        if index < len(signature) and signature[index] == '}':
            pass
        else:
            raise InvalidSignature('dict entry must contain exactly two types: ' + repr(signature))

        return SignatureType('{', (key, value)), index + 1

    if code in ')}':
        raise InvalidSignature('unbalanced %s: %s' % (repr(code), repr(signature)))

    if code == 'h':
        raise InvalidSignature('unix file descriptors are not supported')

    raise InvalidSignature('unknown type code %s: %s' % (repr(code), repr(signature)))



def validate(signature):
    """ Return the signature unchanged if it is well formed; otherwise,
        raise :class:`kbus.errors.InvalidSignature`.
    """

    parse(signature)
    return signature



def split(signature):
    """ Return the list of complete types at the top level of *signature*.
        For example, ``'sa{sv}as'`` splits into ``['s', 'a{sv}', 'as']``.
    """

    return [complete.signature for complete in parse(signature)]



def join(signatures):
    """ Concatenate a sequence of signatures, validating the result.
    """

    joined = ''.join(signatures)
    return validate(joined)



def single(signature):
    """ Return the :class:`SignatureType` for a signature that must contain
        exactly one complete type.
    """

    parsed = parse(signature)

    if len(parsed) != 1:
        raise InvalidSignature('expected a single complete type: ' + repr(signature))

    return parsed[0]



def signature_of(value):
    """ Return the signature for a single value. Wire types from
        :mod:`kbus.protocol.types` and :class:`kbus.protocol.variant.Variant`
        report their own; plain Python values are inferred. Containers that
        are empty, or whose contents disagree, cannot be inferred.
    """

    try:
        found = value.type_signature
    except AttributeError:
        pass
    else:
        if isinstance(found, str):
            return found

    if isinstance(value, bool):
        return 'b'

    if isinstance(value, int):
        if -0x80000000 <= value <= 0x7FFFFFFF:
            return 'i'
        if -0x8000000000000000 <= value <= 0x7FFFFFFFFFFFFFFF:
            return 'x'
        if 0 <= value <= 0xFFFFFFFFFFFFFFFF:
            return 't'
        raise InvalidSignature('integer too large for any wire type: ' + repr(value))

    if isinstance(value, float):
        return 'd'

    if isinstance(value, str):
        return 's'

    if isinstance(value, (bytes, bytearray)):
        return 'ay'

    if isinstance(value, dict):
        key = common(value.keys(), 'dictionary key')
        if key in BASIC:
            pass
        else:
            raise InvalidSignature('dictionary key must be a basic type, not ' + repr(key))
        return 'a{' + key + common(value.values(), 'dictionary value') + '}'

    if isinstance(value, tuple):
        if len(value) == 0:
            raise InvalidSignature('cannot infer the signature of an empty tuple')
        return '(' + ''.join(signature_of(member) for member in value) + ')'

    if isinstance(value, list):
        return 'a' + common(value, 'list')

    raise InvalidSignature('cannot infer a signature for ' + type(value).__name__)



def signature_of_values(values):
    """ Return the signature for a sequence of values, such as the
        arguments of a message body.
    """

    return join(signature_of(value) for value in values)



def common(values, description):
    """ Return the one signature shared by every value in *values*. Used to
        infer the element signature of arrays and dictionaries.
    """

    found = None

    for value in values:
        current = signature_of(value)

        if found is None:
            found = current
        elif current != found:
            raise InvalidSignature('%s contents disagree: %s and %s' % (description, found, current))

    if found is None:
        raise InvalidSignature('cannot infer the signature of an empty ' + description)

    return found



# Native Python types accepted as a decode target, and the signatures each
# one is compatible with. Checked in order, so bool precedes int.

_native = (
    (bool, lambda found: found == 'b'),
    (int, lambda found: found in 'ynqiuxt' and len(found) == 1),
    (float, lambda found: found == 'd'),
    (str, lambda found: found in ('s', 'o', 'g')),
    (bytes, lambda found: found == 'ay'),
    (dict, lambda found: found.startswith('a{')),
    (list, lambda found: found.startswith('a') and not found.startswith('a{') and found != 'ay'),
    (tuple, lambda found: found.startswith('(')),
)


def compatible(expected, found):
    """ Return True if a value with signature *found* may be delivered to a
        caller asking for *expected*. The *expected* type may be None (any
        type), a signature string, one of the wire classes from
        :mod:`kbus.protocol.types`, or a native Python type.
    """

    if expected is None or expected is object:
        return True

    if isinstance(expected, str):
        validate(expected)
        return expected == found

    if isinstance(expected, type):
        declared = getattr(expected, 'type_signature', None)

        if isinstance(declared, str):
            return declared == found

        for native, check in _native:
            if issubclass(expected, native):
                return check(found)

    raise TypeMismatchError('a signature or a type', expected, 'unusable decode target')



def describe(expected):
    """ Return a human-readable description of a decode target, for use in
        error messages.
    """

    if expected is None:
        return 'any value'

    if isinstance(expected, str):
        return repr(expected)

    if isinstance(expected, type):
        declared = getattr(expected, 'type_signature', None)
        if isinstance(declared, str):
            return '%s (%s)' % (expected.__name__, repr(declared))
        return expected.__name__

    return repr(expected)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
