import struct

import kbus
import pytest

from kbus.protocol import marshal
from kbus.protocol import signature as signatures


def test_exact_bytes():

    assert marshal.encode('yu', (1, 2)) == b'\x01\x00\x00\x00\x02\x00\x00\x00'
    assert marshal.encode('s', ('abc',)) == b'\x03\x00\x00\x00abc\x00'
    assert marshal.encode('g', ('ai',)) == b'\x02ai\x00'
    assert marshal.encode('b', (True,)) == b'\x01\x00\x00\x00'
    assert marshal.encode('n', (-2,)) == b'\xfe\xff'
    assert marshal.encode('d', (1.0,)) == struct.pack('<d', 1.0)


def test_empty_array_pads_to_element():

    # Length prefix, then padding to the 8 byte element alignment; the
    # length counts neither.

    assert marshal.encode('ax', ([],)) == b'\x00' * 8
    assert marshal.encode('yax', (1, [5])) == b'\x01\x00\x00\x00\x08\x00\x00\x00' + struct.pack('<q', 5)


def test_dictionary_bytes():

    encoded = marshal.encode('a{sv}', ({'a': 1},))

    expected = b'\x10\x00\x00\x00'          # array length, 16 bytes
    expected += b'\x00' * 4                 # pad to the first dict entry
    expected += b'\x01\x00\x00\x00a\x00'    # key
    expected += b'\x01i\x00'                # variant signature
    expected += b'\x00' * 3                 # pad to int32
    expected += b'\x01\x00\x00\x00'         # value

    assert encoded == expected


def test_big_endian():

    assert marshal.encode('u', (1,), 'B') == b'\x00\x00\x00\x01'
    assert marshal.encode('s', ('a',), 'B') == b'\x00\x00\x00\x01a\x00'

    values = marshal.decode('uas', b'\x00\x00\x00\x07\x00\x00\x00\x06\x00\x00\x00\x01x\x00', 'B')
    assert values == [7, ['x']]


def test_offset():

    encoded = marshal.encode('u', (1,), offset=1)
    assert encoded == b'\x00\x00\x00\x01\x00\x00\x00'
    assert marshal.decode('u', encoded, offset=1) == [1]


round_trips = (
    ('y', 255),
    ('b', True),
    ('b', False),
    ('n', -32768),
    ('q', 65535),
    ('i', -2147483648),
    ('u', 4294967295),
    ('x', -(1 << 63)),
    ('t', (1 << 64) - 1),
    ('d', -2.5),
    ('s', 'héllo wörld'),
    ('s', ''),
    ('o', '/org/example/Object'),
    ('o', '/'),
    ('g', 'a{sa{sv}}'),
    ('ay', b'\x00\x01\xff'),
    ('aay', [b'ab', b'']),
    ('as', ['a', 'bc', '']),
    ('aai', [[1, 2], [], [3]]),
    ('a{is}', {1: 'one', 2: 'two'}),
    ('(yxs)', (1, 2, 'three')),
    ('a(yv)', [(1, kbus.Variant('/a', 'o')), (8, kbus.Variant('s', 'g'))]),
    ('v', kbus.Variant([1, 2], 'ai')),
    ('(sa{sv})', ('x', {'k': kbus.Variant(1)})),
)


def test_round_trip():

    for signature, value in round_trips:
        encoded = marshal.encode(signature, (value,))
        decoded = marshal.decode(signature, encoded)
        assert decoded == [value], signature


def test_round_trip_after_odd_prefix():

    for signature, value in round_trips:
        encoded = marshal.encode('y' + signature, (7, value))
        decoded = marshal.decode('y' + signature, encoded)
        assert decoded == [7, value], signature

        big = marshal.encode('y' + signature, (7, value), 'B')
        assert marshal.decode('y' + signature, big, 'B') == [7, value], signature


def test_decoded_types():

    encoded = marshal.encode('uosa{sv}', (1, '/a', 'b', {'c': 1.5}))
    number, path, text, mapping = marshal.decode('uosa{sv}', encoded)

    assert isinstance(number, kbus.UInt32)
    assert isinstance(path, kbus.ObjectPath)
    assert isinstance(text, kbus.String)
    assert isinstance(mapping, kbus.Dictionary)
    assert mapping.signature == 'sv'
    assert mapping['c'] == kbus.Variant(1.5)
    assert mapping['c'].signature == 'd'


def test_bytes_for_byte_array():

    encoded = marshal.encode('ay', (b'\x00\x01\xff',))
    assert encoded == b'\x03\x00\x00\x00\x00\x01\xff'

    decoded = marshal.decode('ay', encoded)[0]

    assert decoded == b'\x00\x01\xff'
    assert isinstance(decoded, kbus.ByteArray)
    assert decoded.type_signature == 'ay'

    # A list of small integers encodes the same way.

    assert marshal.encode('ay', ([0, 1, 255],)) == encoded
    assert marshal.encode('ay', (decoded,)) == encoded


def test_failed_array_restores_bounds():

    # Two bytes of array, too short for the int32 element inside it.

    data = b'\x02\x00\x00\x00\x01\x00\x00\x00'
    unmarshaller = marshal.Unmarshaller(data)

    with pytest.raises(kbus.UnexpectedEndOfData):
        unmarshaller.read(signatures.single('ai'))

    assert unmarshaller.end == len(data)


def test_encode_mismatch():

    bad = (
        ('y', 256),
        ('y', -1),
        ('u', -1),
        ('s', 1),
        ('s', 'a\x00b'),
        ('o', 'relative/path'),
        ('b', 2),
        ('i', True),
        ('ay', [False]),
        ('d', 'one'),
        ('as', 'abc'),
        ('a{sv}', ['x']),
        ('(ii)', (1,)),
        ('u', kbus.Int32(1)),
        ('as', kbus.Array([1], 'i')),
    )

    for signature, value in bad:
        with pytest.raises(kbus.TypeMismatchError):
            marshal.encode(signature, (value,))


def test_encode_value_count():

    with pytest.raises(kbus.TypeMismatchError):
        marshal.encode('ii', (1,))


def test_wire_type_in_variant_slot():

    encoded = marshal.encode('v', (kbus.UInt32(3),))
    assert marshal.decode('v', encoded) == [kbus.Variant(3, 'u')]


def test_truncated():

    with pytest.raises(kbus.UnexpectedEndOfData):
        marshal.decode('u', b'\x01\x00')

    encoded = marshal.encode('s', ('abc',))

    with pytest.raises(kbus.UnexpectedEndOfData):
        marshal.decode('s', encoded[:-1])

    # An array claiming more bytes than remain.

    with pytest.raises(kbus.UnexpectedEndOfData):
        marshal.decode('ai', b'\x08\x00\x00\x00\x01\x00\x00\x00')


def test_truncated_is_framing_error():

    with pytest.raises(kbus.FramingError):
        marshal.decode('t', b'\x00' * 7)


def test_nonzero_padding():

    with pytest.raises(kbus.FramingError):
        marshal.decode('yu', b'\x01\x01\x00\x00\x02\x00\x00\x00')


def test_malformed():

    with pytest.raises(kbus.FramingError):
        marshal.decode('b', b'\x02\x00\x00\x00')

    with pytest.raises(kbus.FramingError):
        marshal.decode('s', b'\x01\x00\x00\x00ab')

    with pytest.raises(kbus.FramingError):
        marshal.decode('s', b'\x01\x00\x00\x00\xff\x00')

    with pytest.raises(kbus.FramingError):
        marshal.decode('s', b'\x03\x00\x00\x00a\x00b\x00')

    with pytest.raises(kbus.FramingError):
        marshal.decode('o', b'\x01\x00\x00\x00a\x00')

    with pytest.raises(kbus.FramingError):
        marshal.decode('g', b'\x01z\x00')

    with pytest.raises(kbus.FramingError):
        marshal.decode('v', b'\x02ii\x00')


def test_trailing_bytes():

    with pytest.raises(kbus.FramingError):
        marshal.decode('y', b'\x01\x02')


def test_nesting_limit():

    value = 1

    with pytest.raises(kbus.FramingError):
        for level in range(70):
            value = kbus.Variant(value)


def test_reader():

    encoded = marshal.encode('sua{sv}', ('a', 7, {'x': 1}))
    reader = marshal.Reader('sua{sv}', encoded)

    assert reader.peek() == 's'

    # A mismatch leaves the cursor in place.

    with pytest.raises(kbus.TypeMismatchError):
        reader.read(int)

    assert reader.read(str) == 'a'
    assert reader.remaining == ['u', 'a{sv}']

    with pytest.raises(kbus.TypeMismatchError):
        reader.read('i')

    assert reader.read(kbus.UInt32) == 7
    assert reader.read(dict) == {'x': kbus.Variant(1)}
    assert reader.peek() is None

    with pytest.raises(kbus.TypeMismatchError):
        reader.read()

    reader.finish()


def test_reader_finish_early():

    encoded = marshal.encode('ss', ('a', 'b'))
    reader = marshal.Reader('ss', encoded)
    reader.read()

    with pytest.raises(kbus.TypeMismatchError):
        reader.finish()


def test_reader_iterates():

    encoded = marshal.encode('ybs', (1, True, 'x'))
    assert list(marshal.Reader('ybs', encoded)) == [1, True, 'x']


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
