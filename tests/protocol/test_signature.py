import kbus
import pytest

from kbus.protocol import signature as signatures


def test_split():

    assert signatures.split('') == []
    assert signatures.split('i') == ['i']
    assert signatures.split('sa{sv}as') == ['s', 'a{sv}', 'as']
    assert signatures.split('a(ii)v(sa{oi})') == ['a(ii)', 'v', '(sa{oi})']


def test_single():

    parsed = signatures.single('a{sv}')
    assert parsed.code == 'a'
    assert parsed.children[0].code == '{'
    assert parsed.alignment == 4

    with pytest.raises(kbus.InvalidSignature):
        signatures.single('ii')

    with pytest.raises(kbus.InvalidSignature):
        signatures.single('')


def test_valid():

    for signature in ('', 'y', 'bnqiuxtd', 'sog', 'ay', 'aay', 'a{yv}', 'a{sa{sv}}', '(i)', '((i)(s))', 'v', 'a(yv)'):
        assert signatures.validate(signature) == signature


def test_invalid():

    bad = (
        'a',            # array without an element
        '(',            # unterminated struct
        '()',           # empty struct
        ')',            # stray close
        '{sv}',         # dict entry outside an array
        'a{vs}',        # key must be basic
        'a{s}',         # dict entry needs two types
        'a{sss}',       # and only two
        'a{(i)s}',
        'z',            # unknown code
        'h',            # unix fds are not supported
        'ah',
    )

    for signature in bad:
        with pytest.raises(kbus.InvalidSignature):
            signatures.validate(signature)


def test_invalid_is_value_error():

    with pytest.raises(ValueError):
        signatures.validate('a{vs}')


def test_length_limit():

    signatures.validate('i' * 255)

    with pytest.raises(kbus.InvalidSignature):
        signatures.validate('i' * 256)


def test_depth_limits():

    signatures.validate('a' * 32 + 'i')

    with pytest.raises(kbus.InvalidSignature):
        signatures.validate('a' * 33 + 'i')

    signatures.validate('(' * 32 + 'i' + ')' * 32)

    with pytest.raises(kbus.InvalidSignature):
        signatures.validate('(' * 33 + 'i' + ')' * 33)


def test_signature_of():

    assert signatures.signature_of(True) == 'b'
    assert signatures.signature_of(5) == 'i'
    assert signatures.signature_of(-5) == 'i'
    assert signatures.signature_of(1 << 40) == 'x'
    assert signatures.signature_of(1 << 63) == 't'
    assert signatures.signature_of(1.5) == 'd'
    assert signatures.signature_of('text') == 's'
    assert signatures.signature_of(b'raw') == 'ay'
    assert signatures.signature_of(['a', 'b']) == 'as'
    assert signatures.signature_of({'a': 1}) == 'a{si}'
    assert signatures.signature_of(('a', 1, 2.0)) == '(sid)'
    assert signatures.signature_of(kbus.Variant(1)) == 'v'
    assert signatures.signature_of(kbus.UInt32(1)) == 'u'
    assert signatures.signature_of(kbus.ObjectPath('/a')) == 'o'
    assert signatures.signature_of({'a': kbus.Variant(1)}) == 'a{sv}'


def test_signature_of_wire_containers():

    assert signatures.signature_of(kbus.Array([], 'u')) == 'au'
    assert signatures.signature_of(kbus.Dictionary({}, 'sv')) == 'a{sv}'
    assert signatures.signature_of(kbus.Struct((1, 'a'), 'us')) == '(us)'


def test_signature_of_ambiguous():

    with pytest.raises(kbus.InvalidSignature):
        signatures.signature_of([])

    with pytest.raises(kbus.InvalidSignature):
        signatures.signature_of({})

    with pytest.raises(kbus.InvalidSignature):
        signatures.signature_of([1, 'a'])

    with pytest.raises(kbus.InvalidSignature):
        signatures.signature_of(None)

    with pytest.raises(kbus.InvalidSignature):
        signatures.signature_of(1 << 64)


def test_signature_of_values():

    assert signatures.signature_of_values(()) == ''
    assert signatures.signature_of_values(('a', 1, [1.0])) == 'siad'


def test_compatible():

    assert signatures.compatible(None, 'a{sv}')
    assert signatures.compatible('u', 'u')
    assert not signatures.compatible('i', 'u')

    assert signatures.compatible(int, 'u')
    assert signatures.compatible(int, 'y')
    assert not signatures.compatible(int, 's')
    assert not signatures.compatible(int, 'b')
    assert signatures.compatible(bool, 'b')
    assert signatures.compatible(str, 's')
    assert signatures.compatible(str, 'o')
    assert not signatures.compatible(str, 'u')
    assert signatures.compatible(float, 'd')
    assert signatures.compatible(bytes, 'ay')
    assert signatures.compatible(dict, 'a{sv}')
    assert not signatures.compatible(dict, 'as')
    assert signatures.compatible(list, 'as')
    assert not signatures.compatible(list, 'ay')
    assert not signatures.compatible(list, 'a{sv}')
    assert signatures.compatible(tuple, '(ii)')

    assert signatures.compatible(kbus.UInt32, 'u')
    assert not signatures.compatible(kbus.UInt32, 'i')
    assert signatures.compatible(kbus.Variant, 'v')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
