import json
import threading

import fakebus
import kbus
import pytest

from kbus.protocol import fields
from kbus.stdintf import InterfacesAdded, PropertiesChanged


interface = 'org.example.Thing'
path = '/org/example/thing'
service = 'org.example.Service'


class Thing:
    """ Server side of the standard interfaces for a single object.
    """

    def __init__(self):
        self.properties = {
            'Color': kbus.Variant('red'),
            'Count': kbus.Variant(kbus.UInt32(3)),
        }

    def introspect(self):
        return '<node><interface name="%s"/></node>' % (interface)

    def get(self, interface_name, property_name):
        self._check(interface_name)
        try:
            return self.properties[property_name]
        except KeyError:
            raise kbus.BusError(fields.ERROR_INVALID_ARGS, 'no property ' + property_name)

    def get_all(self, interface_name):
        self._check(interface_name)
        return kbus.Dictionary(self.properties, 'sv')

    def set(self, interface_name, property_name, value):
        self._check(interface_name)
        self.properties[property_name] = value

    def managed(self):
        return {
            path: {interface: self.properties},
            path + '/child': {interface: {'Count': kbus.Variant(kbus.UInt32(0))}},
        }

    def _check(self, interface_name):
        if interface_name != interface:
            raise kbus.BusError(fields.ERROR_INVALID_ARGS, 'no interface ' + interface_name)


@pytest.fixture
def linked():

    client_side, server_side = fakebus.pair()

    client = kbus.Connection(client_side, timeout=2.0)
    server = kbus.Connection(server_side, timeout=2.0)

    thing = Thing()
    server.serve(fields.INTROSPECTABLE, 'Introspect', thing.introspect, 's')
    server.serve(fields.PROPERTIES, 'Get', thing.get, 'v')
    server.serve(fields.PROPERTIES, 'GetAll', thing.get_all, 'a{sv}')
    server.serve(fields.PROPERTIES, 'Set', thing.set)
    server.serve(fields.OBJECT_MANAGER, 'GetManagedObjects', thing.managed, 'a{oa{sa{sv}}}')

    server.start()
    client.start()

    yield client.with_path(service, path), server, thing

    client.close()
    server.close()


def test_introspect(linked):
    proxy, server, thing = linked

    assert proxy.introspect() == thing.introspect()


def test_get(linked):
    proxy, server, thing = linked

    assert proxy.get(interface, 'Color') == 'red'
    assert proxy.get(interface, 'Color', str) == 'red'
    assert proxy.get(interface, 'Count', int) == 3
    assert isinstance(proxy.get(interface, 'Count'), kbus.UInt32)


def test_get_mismatch(linked):
    proxy, server, thing = linked

    with pytest.raises(kbus.TypeMismatchError):
        proxy.get(interface, 'Count', str)

    with pytest.raises(kbus.TypeMismatchError):
        proxy.get(interface, 'Count', 'i')


def test_get_unknown(linked):
    proxy, server, thing = linked

    with pytest.raises(kbus.BusError) as raised:
        proxy.get(interface, 'Missing')

    assert raised.value.name == fields.ERROR_INVALID_ARGS
    assert 'Missing' in raised.value.text


def test_get_all(linked):
    proxy, server, thing = linked

    properties = proxy.get_all(interface)

    assert properties == {'Color': kbus.Variant('red'), 'Count': kbus.Variant(3, 'u')}
    assert properties['Count'].signature == 'u'
    assert kbus.unbox(properties['Count'], int) == 3

    with pytest.raises(kbus.TypeMismatchError):
        kbus.unbox(properties['Count'], str)


def test_set(linked):
    proxy, server, thing = linked

    proxy.set(interface, 'Count', 9, 'u')
    assert thing.properties['Count'] == kbus.Variant(9, 'u')

    proxy.set(interface, 'Color', 'blue')
    assert thing.properties['Color'] == kbus.Variant('blue')

    proxy.set(interface, 'Count', kbus.Variant(kbus.UInt32(10)))
    assert proxy.get(interface, 'Count', int) == 10


def test_get_managed_objects(linked):
    proxy, server, thing = linked

    objects = proxy.get_managed_objects()

    assert set(objects.keys()) == set((path, path + '/child'))
    assert isinstance(list(objects.keys())[0], kbus.ObjectPath)

    properties = objects[path][interface]
    assert properties['Color'] == kbus.Variant('red')
    assert kbus.unbox(properties['Count'], int) == 3
    assert kbus.unbox(objects[path + '/child'][interface]['Count'], int) == 0


def test_get_managed_objects_two_interfaces(linked):
    proxy, server, thing = linked

    other = 'org.example.Widget'

    def managed():
        return {
            path: {
                interface: {'Color': kbus.Variant('red')},
                other: {'Size': kbus.Variant(kbus.Int32(3))},
            },
        }

    server.serve(fields.OBJECT_MANAGER, 'GetManagedObjects', managed, 'a{oa{sa{sv}}}')

    objects = proxy.get_managed_objects()

    assert len(objects) == 1
    assert len(objects[path]) == 2
    assert len(objects[path][interface]) == 1
    assert len(objects[path][other]) == 1

    assert kbus.unbox(objects[path][interface]['Color'], str) == 'red'

    size = kbus.unbox(objects[path][other]['Size'], kbus.Int32)
    assert size == 3
    assert isinstance(size, kbus.Int32)


def test_ping(linked):
    proxy, server, thing = linked

    assert proxy.ping() is None


def test_get_machine_id(linked, isolated_config):
    proxy, server, thing = linked

    machine_id = isolated_config / 'machine-id'
    machine_id.write_text('0123456789abcdef0123456789abcdef\n')

    settings = isolated_config / 'kbus.json'
    settings.write_text(json.dumps({'machine_id_files': [str(machine_id)]}))
    kbus.config.reset()

    assert proxy.get_machine_id() == '0123456789abcdef0123456789abcdef'


def test_machine_id_missing(linked, isolated_config):
    proxy, server, thing = linked

    settings = isolated_config / 'kbus.json'
    settings.write_text(json.dumps({'machine_id_files': [str(isolated_config / 'absent')]}))
    kbus.config.reset()

    with pytest.raises(kbus.BusError) as raised:
        proxy.get_machine_id()

    assert raised.value.name == fields.ERROR_FAILED


def test_unknown_method(linked):
    proxy, server, thing = linked

    with pytest.raises(kbus.BusError) as raised:
        proxy.method_call('org.example.Nothing', 'Nowhere')

    assert raised.value.name == fields.ERROR_UNKNOWN_METHOD


def test_handler_failure(linked):
    proxy, server, thing = linked

    def broken():
        raise ValueError('handler bug')

    server.serve(interface, 'Broken', broken)

    with pytest.raises(kbus.BusError) as raised:
        proxy.method_call(interface, 'Broken')

    assert raised.value.name == fields.ERROR_FAILED
    assert raised.value.text == 'handler bug'


def test_handler_bad_error_name(linked):
    proxy, server, thing = linked

    def refuse():
        raise kbus.BusError('NotADottedName', 'nope')

    server.serve(interface, 'Refuse', refuse)

    with pytest.raises(kbus.BusError) as raised:
        proxy.method_call(interface, 'Refuse')

    assert raised.value.name == fields.ERROR_FAILED
    assert 'nope' in raised.value.text


def test_handler_bad_return(linked):
    proxy, server, thing = linked

    server.serve(interface, 'Wrong', lambda: 'not a number', 'u')

    with pytest.raises(kbus.BusError) as raised:
        proxy.method_call(interface, 'Wrong')

    assert raised.value.name == fields.ERROR_FAILED


def test_handler_multiple_values(linked):
    proxy, server, thing = linked

    server.serve(interface, 'Pair', lambda first, second: (second, first), 'si')

    assert proxy.method_call(interface, 'Pair', (5, 'five'), 'is', expect='si') == ('five', 5)


def test_call_without_interface(linked):
    proxy, server, thing = linked

    assert proxy.method_call(None, 'Introspect', expect=str) == thing.introspect()


def test_properties_changed_signal(linked):
    proxy, server, thing = linked

    received = list()
    event = threading.Event()

    def collect(changed):
        received.append(changed)
        event.set()

    rule = PropertiesChanged.match_rule(path=path)
    proxy.connection.subscribe(rule, collect, expect=PropertiesChanged)

    # Not matched: different signal on the same path.

    server.send(InterfacesAdded('/other', {}).to_message(path))

    changed = PropertiesChanged(interface, {'Count': kbus.Variant(kbus.UInt32(4))}, ['Color'])
    server.send(changed.to_message(path))

    assert event.wait(2.0)
    assert received == [changed]
    assert received[0].invalidated_properties == ['Color']


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
