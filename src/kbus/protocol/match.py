""" Signal filtering. A :class:`MatchRule` decides whether an inbound
    signal is of interest, and renders itself in the match rule syntax the
    bus daemon accepts. A :class:`SignalArgs` subclass describes the typed
    body of one particular signal.
"""

from ..errors import TypeMismatchError
from .fields import MessageType
from .message import Message
from . import names
from . import signature as signatures


class MatchRule:
    """ Filter for inbound signals. Every field that is not None must match
        exactly; *path_namespace* matches the named path and everything
        below it, and cannot be combined with *path*.
    """

    def __init__(self, interface=None, member=None, path=None, sender=None, path_namespace=None):

        if interface is not None:
            names.validate_interface(interface)
        if member is not None:
            names.validate_member(member)
        if path is not None:
            names.validate_object_path(path)
        if path_namespace is not None:
            names.validate_object_path(path_namespace)
        if sender is not None:
            names.validate_bus_name(sender)

        if path is not None and path_namespace is not None:
            raise ValueError('path and path_namespace are mutually exclusive')

        self.interface = interface
        self.member = member
        self.path = path
        self.sender = sender
        self.path_namespace = path_namespace


    def _key(self):
        return (self.interface, self.member, self.path, self.sender, self.path_namespace)


    def __eq__(self, other):

        if isinstance(other, MatchRule):
            return self._key() == other._key()

        return NotImplemented


    def __hash__(self):
        return hash(self._key())


    def __repr__(self):
        return 'MatchRule(%s)' % (repr(str(self)))


    def __str__(self):
        """ Render the rule as a bus match rule string, suitable as the
            argument to ``org.freedesktop.DBus.AddMatch``.
        """

        clauses = ["type='signal'"]

        for key in ('sender', 'interface', 'member', 'path', 'path_namespace'):
            value = getattr(self, key)
            if value is None:
                continue
            clauses.append('%s=%s' % (key, quote(value)))

        return ','.join(clauses)


    def matches(self, message):

        if message.type != MessageType.SIGNAL:
            return False

        if self.interface is not None and message.interface != self.interface:
            return False

        if self.member is not None and message.member != self.member:
            return False

        if self.path is not None and message.path != self.path:
            return False

        if self.sender is not None and message.sender != self.sender:
            return False

        if self.path_namespace is not None:
            namespace = self.path_namespace
            path = message.path

            if namespace == '/' or path == namespace or path.startswith(namespace + '/'):
                pass
            else:
                return False

        return True


# end of class MatchRule



def quote(value):
    """ Quote a value for a match rule. The syntax has no escape character
        inside quotes, so an apostrophe closes the quoted section, appears
        escaped, and a new quoted section begins.
    """

    return "'" + value.replace("'", "'\\''") + "'"



class SignalArgs:
    """ Base class describing the body of one signal. Subclasses set the
        *interface*, *member* and body *signature*, and name the body
        arguments in *fields*, in order.
    """

    interface = None
    member = None
    signature = ''
    fields = ()

    def __init__(self, *args, **kwargs):

        if len(args) > len(self.fields):
            raise TypeError('%s takes %d arguments, %d given' % (self.__class__.__name__, len(self.fields), len(args)))

        values = dict(zip(self.fields, args))

        for key, value in kwargs.items():
            if key not in self.fields:
                raise TypeError('%s has no field %s' % (self.__class__.__name__, repr(key)))
            if key in values:
                raise TypeError('%s given twice for %s' % (repr(key), self.__class__.__name__))
            values[key] = value

        for key in self.fields:
            try:
                value = values[key]
            except KeyError:
                raise TypeError('%s requires %s' % (self.__class__.__name__, repr(key)))
            setattr(self, key, value)


    def __eq__(self, other):

        if type(other) is type(self):
            return self.values() == other.values()

        return NotImplemented


    __hash__ = None


    def __repr__(self):

        shown = ', '.join('%s=%s' % (key, repr(getattr(self, key))) for key in self.fields)
        return '%s(%s)' % (self.__class__.__name__, shown)


    def values(self):
        return tuple(getattr(self, key) for key in self.fields)


    @classmethod
    def from_message(cls, message):
        """ Decode a signal message into an instance of this class. The
            message must be the signal this class describes, and its body
            must have exactly the declared signature.
        """

        if message.type != MessageType.SIGNAL:
            raise TypeMismatchError('a signal', message.type.name)

        if message.interface != cls.interface or message.member != cls.member:
            found = '%s.%s' % (message.interface, message.member)
            raise TypeMismatchError('%s.%s' % (cls.interface, cls.member), found, 'signal')

        if message.signature != cls.signature:
            raise TypeMismatchError(repr(cls.signature), message.signature, '%s.%s body' % (cls.interface, cls.member))

        reader = message.reader()
        values = [reader.read(expected) for expected in signatures.split(cls.signature)]
        reader.finish()

        return cls(*values)


    def to_message(self, path, destination=None):
        """ Construct the signal message carrying this instance, emitted from
            the object at *path*.
        """

        return Message.signal(path, self.interface, self.member, self.values(), self.signature, destination)


    @classmethod
    def match_rule(cls, path=None, sender=None):
        return MatchRule(cls.interface, cls.member, path=path, sender=sender)


# end of class SignalArgs


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
