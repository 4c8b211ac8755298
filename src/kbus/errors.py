""" Exception classes shared by every layer of kbus. Codec and signature
    errors are raised directly to the immediate caller; correlator errors
    (:class:`BusError`, :class:`TimedOut`) resolve a single pending call
    and leave the connection intact.
"""


class Error(Exception):
    """ Base class for all kbus errors.
    """


class InvalidSignature(Error, ValueError):
    """ A type signature is malformed, exceeds protocol limits, or uses a
        type code that is not supported.
    """


class TypeMismatchError(Error, TypeError):
    """ The requested type does not agree with the signature present in the
        data, in a variant, or with the value handed to the encoder.
    """

    def __init__(self, expected, found, context=None):

        self.expected = expected
        self.found = found

        text = 'expected %s, found %s' % (expected, repr(found))
        if context:
            text = context + ': ' + text

        Error.__init__(self, text)


class FramingError(Error, ValueError):
    """ The bytes for a single message are corrupt. This is fatal for that
        message, never for the connection that delivered it.
    """


class UnexpectedEndOfData(FramingError):
    """ The byte sequence ended before the value being decoded did.
    """


class BusError(Error):
    """ The remote side answered a call with an error message. The *name*
        is the bus error name, for example
        ``org.freedesktop.DBus.Error.UnknownMethod``; the *text* is the
        human-readable description, if one was supplied.
    """

    def __init__(self, name, text=''):

        self.name = name
        self.text = text

        if text:
            Error.__init__(self, '%s: %s' % (name, text))
        else:
            Error.__init__(self, name)


class TimedOut(Error):
    """ No reply arrived before the caller's deadline. This says nothing
        about whether the remote side handled the call.
    """


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
