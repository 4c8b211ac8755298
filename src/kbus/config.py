""" Local configuration for kbus. Settings are read from ``kbus.json`` in
    the kbus home directory; individual settings may be overridden with
    environment variables. Nothing here is required: every setting has a
    default.
"""

import os
import threading

import msgspec


class Settings(msgspec.Struct, forbid_unknown_fields=True):
    """ The full set of recognized settings, with their defaults. The
        *timeout* is the default method call timeout in seconds; the
        *byteorder* is the endianness marker used for outbound messages,
        either ``'l'`` (little endian) or ``'B'`` (big endian).
    """

    timeout: float = 25.0
    byteorder: str = 'l'
    machine_id_files: tuple = ('/etc/machine-id', '/var/lib/dbus/machine-id')


# Environment variables that override a single setting, and the conversion
# applied to the string value.

overrides = {
    'timeout': ('KBUS_TIMEOUT', float),
    'byteorder': ('KBUS_BYTEORDER', str),
}

filename = 'kbus.json'

_cache = dict()
_cache_lock = threading.Lock()



def directory(default=None):
    """ Return the directory location where we should be loading
        configuration files. This defaults to ``$HOME/.kbus``, but can be
        overridden by calling this method with a valid path, or by setting
        the ``KBUS_HOME`` environment variable. Note that changes to the
        environment variable will be ignored unless it is set prior to the
        first invocation of this method.
    """

    if default is not None:
        default = str(default)
        default = os.path.expandvars(default)

        if os.path.isabs(default):
            pass
        else:
            raise ValueError('the default directory must be an absolute path')

        os.environ['KBUS_HOME'] = default
        directory.found = default
        reset()

    found = directory.found

    if found is not None:
        return found

    try:
        found = os.environ['KBUS_HOME']
    except KeyError:
        pass
    else:
        directory.found = found
        return found

    try:
        home = os.environ['HOME']
    except KeyError:
        raise RuntimeError('KBUS_HOME and HOME environment variables not set, cannot determine kbus configuration directory')

    found = os.path.join(home, '.kbus')

    directory.found = found
    return found

directory.found = None



def load():
    """ Read and validate the configuration file, returning a
        :class:`Settings` instance. A missing file is not an error; the
        defaults are returned instead. A malformed file raises
        :class:`ValueError`.
    """

    path = os.path.join(directory(), filename)

    try:
        with open(path, 'rb') as contents:
            raw = contents.read()
    except FileNotFoundError:
        return Settings()

    try:
        settings = msgspec.json.decode(raw, type=Settings)
    except msgspec.ValidationError as e:
        raise ValueError('invalid kbus configuration in %s: %s' % (path, str(e)))
    except msgspec.DecodeError as e:
        raise ValueError('unreadable kbus configuration in %s: %s' % (path, str(e)))

    _check(settings)
    return settings



def _check(settings):

    if settings.byteorder not in ('l', 'B'):
        raise ValueError('byteorder must be l or B, not ' + repr(settings.byteorder))

    if settings.timeout <= 0:
        raise ValueError('timeout must be positive, not ' + repr(settings.timeout))



def settings():
    """ Return the cached :class:`Settings`, loading them on first use.
    """

    try:
        return _cache['settings']
    except KeyError:
        pass

    with _cache_lock:
        try:
            loaded = _cache['settings']
        except KeyError:
            loaded = load()
            _cache['settings'] = loaded

    return loaded



def get(name):
    """ Return the value of a single setting, honoring any environment
        variable override for that setting.
    """

    try:
        variable, convert = overrides[name]
    except KeyError:
        pass
    else:
        try:
            value = os.environ[variable]
        except KeyError:
            pass
        else:
            value = convert(value)
            if name == 'byteorder' and value not in ('l', 'B'):
                raise ValueError(variable + ' must be l or B, not ' + repr(value))
            return value

    return getattr(settings(), name)



def reset():
    """ Discard the cached settings; the next :func:`get` reloads them.
    """

    _cache.clear()



def machine_id():
    """ Return the local machine UUID as a 32 character hexadecimal string,
        read from the first readable file in the *machine_id_files* setting.
    """

    for path in get('machine_id_files'):
        try:
            with open(path, 'r') as contents:
                found = contents.read().strip()
        except OSError:
            continue

        if found:
            return found

    raise RuntimeError('no machine id available')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
