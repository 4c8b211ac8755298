""" Python implementation of a D-Bus style message bus client. This includes
    the typed wire codec, the message envelope, call/reply correlation and
    signal delivery, and helpers for the standard bus interfaces.
"""

# Submodules used by multiple other components.

from . import errors
from . import config
home = config.directory

from . import protocol
from . import transport

# Primary public-facing interfaces.

from .errors import (
    Error,
    BusError,
    FramingError,
    InvalidSignature,
    TimedOut,
    TypeMismatchError,
    UnexpectedEndOfData,
)

from .protocol import (
    Array,
    ByteArray,
    Boolean,
    Byte,
    Dictionary,
    Double,
    Int16,
    Int32,
    Int64,
    MatchRule,
    Message,
    ObjectPath,
    Signature,
    SignalArgs,
    String,
    Struct,
    UInt16,
    UInt32,
    UInt64,
    Variant,
    box,
    unbox,
)

from . import connection
from .connection import Connection

from . import stdintf
from .stdintf import ObjectProxy

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
