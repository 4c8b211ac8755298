import kbus
import pytest

from kbus.protocol.match import quote
from kbus.stdintf import InterfacesAdded, InterfacesRemoved, PropertiesChanged


def test_render():

    rule = kbus.MatchRule(interface='org.example.I', member='Changed')
    assert str(rule) == "type='signal',interface='org.example.I',member='Changed'"

    rule = kbus.MatchRule(sender=':1.7', path_namespace='/org/example')
    assert str(rule) == "type='signal',sender=':1.7',path_namespace='/org/example'"

    assert str(kbus.MatchRule()) == "type='signal'"


def test_quote():

    assert quote('plain') == "'plain'"
    assert quote("it's") == "'it'\\''s'"


def test_validation():

    with pytest.raises(ValueError):
        kbus.MatchRule(path='/a', path_namespace='/a')

    with pytest.raises(kbus.FramingError):
        kbus.MatchRule(interface='nodots')

    with pytest.raises(kbus.FramingError):
        kbus.MatchRule(path='no/slash')


def test_equality():

    assert kbus.MatchRule(member='A') == kbus.MatchRule(member='A')
    assert kbus.MatchRule(member='A') != kbus.MatchRule(member='B')
    assert len(set((kbus.MatchRule(member='A'), kbus.MatchRule(member='A')))) == 1


def test_matches():

    signal = kbus.Message.signal('/org/example/thing', 'org.example.I', 'Changed')

    assert kbus.MatchRule().matches(signal)
    assert kbus.MatchRule(interface='org.example.I').matches(signal)
    assert kbus.MatchRule(member='Changed').matches(signal)
    assert kbus.MatchRule(path='/org/example/thing').matches(signal)
    assert kbus.MatchRule(path_namespace='/org/example').matches(signal)
    assert kbus.MatchRule(path_namespace='/org/example/thing').matches(signal)
    assert kbus.MatchRule(path_namespace='/').matches(signal)

    assert not kbus.MatchRule(interface='org.example.J').matches(signal)
    assert not kbus.MatchRule(member='Other').matches(signal)
    assert not kbus.MatchRule(path='/org/example').matches(signal)
    assert not kbus.MatchRule(path_namespace='/org/ex').matches(signal)
    assert not kbus.MatchRule(sender=':1.1').matches(signal)


def test_only_signals_match():

    call = kbus.Message.method_call(None, '/a', 'org.example.I', 'Changed')
    assert not kbus.MatchRule().matches(call)


def test_signal_args_round_trip():

    changed = PropertiesChanged('org.example.I', {'Color': kbus.Variant('red')}, ['Count'])

    message = changed.to_message('/org/example/thing')
    assert message.signature == 'sa{sv}as'
    assert message.member == 'PropertiesChanged'

    decoded = kbus.Message.from_bytes(bytes(message))
    received = PropertiesChanged.from_message(decoded)

    assert received == changed
    assert received.interface_name == 'org.example.I'
    assert received.changed_properties['Color'] == kbus.Variant('red')
    assert received.invalidated_properties == ['Count']

    assert decoded.unpack(PropertiesChanged) == changed


def test_signal_args_keywords():

    removed = InterfacesRemoved(object='/a', interfaces=['org.example.I'])
    assert removed.values() == ('/a', ['org.example.I'])

    with pytest.raises(TypeError):
        InterfacesRemoved('/a')

    with pytest.raises(TypeError):
        InterfacesRemoved('/a', [], extra=1)

    with pytest.raises(TypeError):
        InterfacesRemoved('/a', [], '')


def test_signal_args_mismatch():

    added = InterfacesAdded('/a', {'org.example.I': {'Count': kbus.Variant(kbus.UInt32(1))}})
    message = kbus.Message.from_bytes(bytes(added.to_message('/')))

    with pytest.raises(kbus.TypeMismatchError):
        PropertiesChanged.from_message(message)

    # Right interface and member, wrong body.

    impostor = kbus.Message.signal('/', 'org.freedesktop.DBus.ObjectManager', 'InterfacesAdded', ('/a',))

    with pytest.raises(kbus.TypeMismatchError):
        InterfacesAdded.from_message(impostor)


def test_signal_args_match_rule():

    rule = PropertiesChanged.match_rule(path='/org/example/thing')

    assert rule.interface == 'org.freedesktop.DBus.Properties'
    assert rule.member == 'PropertiesChanged'

    message = PropertiesChanged('i.f', {}, []).to_message('/org/example/thing')
    assert rule.matches(message)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
