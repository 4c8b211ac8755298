""" Validation of the names carried in message headers: object paths,
    interface names, member names, error names and bus names. Each
    ``validate_*`` function returns the name unchanged if it is valid, and
    raises :class:`kbus.errors.FramingError` otherwise.
"""

import re

from ..errors import FramingError
from .fields import MAX_NAME_LENGTH


_element = r'[A-Za-z_][A-Za-z0-9_]*'
_path = re.compile(r'^/$|^(/[A-Za-z0-9_]+)+$')
_interface = re.compile(r'^%s(\.%s)+$' % (_element, _element))
_member = re.compile(r'^%s$' % (_element))
_unique = re.compile(r'^:[A-Za-z0-9_-]+(\.[A-Za-z0-9_-]+)+$')
_well_known = re.compile(r'^[A-Za-z_-][A-Za-z0-9_-]*(\.[A-Za-z_-][A-Za-z0-9_-]*)+$')


def is_object_path(path):
    try:
        return _path.fullmatch(path) is not None
    except TypeError:
        return False


def validate_object_path(path):

    if is_object_path(path):
        return path

    raise FramingError('invalid object path: ' + repr(path))


def _validate_length(kind, name):

    try:
        length = len(name)
    except TypeError:
        raise FramingError('invalid %s: %s' % (kind, repr(name)))

    if length > MAX_NAME_LENGTH:
        raise FramingError('%s exceeds %d characters: %s' % (kind, MAX_NAME_LENGTH, repr(name)))


def validate_interface(name):

    _validate_length('interface name', name)

    if _interface.fullmatch(name) is None:
        raise FramingError('invalid interface name: ' + repr(name))

    return name


def validate_error_name(name):
    """ Error names follow the same rules as interface names.
    """

    _validate_length('error name', name)

    if _interface.fullmatch(name) is None:
        raise FramingError('invalid error name: ' + repr(name))

    return name


def validate_member(name):

    _validate_length('member name', name)

    if _member.fullmatch(name) is None:
        raise FramingError('invalid member name: ' + repr(name))

    return name


def validate_bus_name(name):
    """ Bus names are either unique connection names (``:1.42``) or
        well-known names (``org.example.Service``); element rules differ
        slightly between the two forms.
    """

    _validate_length('bus name', name)

    if name.startswith(':'):
        matched = _unique.fullmatch(name)
    else:
        matched = _well_known.fullmatch(name)

    if matched is None:
        raise FramingError('invalid bus name: ' + repr(name))

    return name


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
