""" Client helpers for the standard bus interfaces: Introspectable,
    Properties, ObjectManager, and Peer. An :class:`ObjectProxy` binds a
    connection, a destination and an object path, so that the remote object
    can be queried without repeating them; the signal classes describe the
    typed bodies of the standard signals.
"""

from .protocol.fields import INTROSPECTABLE, OBJECT_MANAGER, PEER, PROPERTIES
from .protocol.match import SignalArgs
from .protocol.variant import box, unbox


class ObjectProxy:
    """ The remote object at *path*, owned by *destination*, reached over
        *connection*. Calls wait at most *timeout* seconds; the default is
        the connection's own.
    """

    def __init__(self, connection, destination, path, timeout=None):

        self.connection = connection
        self.destination = destination
        self.path = path
        self.timeout = timeout


    def __repr__(self):
        return 'ObjectProxy(%s, %s)' % (repr(self.destination), repr(self.path))


    def method_call(self, interface, member, args=(), signature=None, expect=None):
        """ Invoke *interface*.*member* on the remote object. See
            :func:`kbus.connection.Connection.call`.
        """

        return self.connection.call(self.destination, self.path, interface,
                                    member, args, signature, expect, self.timeout)


    def introspect(self):
        """ Return the introspection XML describing the remote object.
        """

        return self.method_call(INTROSPECTABLE, 'Introspect', expect='s')


    def get(self, interface_name, property_name, expect=None):
        """ Return the value of one property. With *expect* set the value
            is checked before it is returned: asking for a ``str`` when the
            property holds a uint32 raises
            :class:`kbus.errors.TypeMismatchError`.
        """

        variant = self.method_call(PROPERTIES, 'Get',
                                   (interface_name, property_name), 'ss', 'v')
        return unbox(variant, expect)


    def get_all(self, interface_name):
        """ Return every property of *interface_name* as a dictionary of
            :class:`kbus.protocol.variant.Variant` values.
        """

        return self.method_call(PROPERTIES, 'GetAll',
                                (interface_name,), 's', 'a{sv}')


    def set(self, interface_name, property_name, value, signature=None):
        """ Set one property. The *value* is boxed as a variant, using
            *signature* if given; a value that is already a
            :class:`kbus.protocol.variant.Variant` is sent unchanged.
        """

        value = box(value, signature)
        self.method_call(PROPERTIES, 'Set',
                         (interface_name, property_name, value), 'ssv', '')


    def get_managed_objects(self):
        """ Return the object tree below this object: a dictionary mapping
            each object path to its interfaces, and each interface to its
            properties.
        """

        return self.method_call(OBJECT_MANAGER, 'GetManagedObjects',
                                expect='a{oa{sa{sv}}}')


    def ping(self):
        self.method_call(PEER, 'Ping', expect='')


    def get_machine_id(self):
        return self.method_call(PEER, 'GetMachineId', expect='s')


# end of class ObjectProxy



class PropertiesChanged(SignalArgs):
    """ Emitted when properties of *interface_name* change. The changed
        values are carried in *changed_properties*; properties whose new
        value is not sent are named in *invalidated_properties*.
    """

    interface = PROPERTIES
    member = 'PropertiesChanged'
    signature = 'sa{sv}as'
    fields = ('interface_name', 'changed_properties', 'invalidated_properties')



class InterfacesAdded(SignalArgs):
    """ Emitted by an object manager when *object* gains *interfaces*, a
        dictionary mapping each interface name to its properties.
    """

    interface = OBJECT_MANAGER
    member = 'InterfacesAdded'
    signature = 'oa{sa{sv}}'
    fields = ('object', 'interfaces')



class InterfacesRemoved(SignalArgs):

    interface = OBJECT_MANAGER
    member = 'InterfacesRemoved'
    signature = 'oas'
    fields = ('object', 'interfaces')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
