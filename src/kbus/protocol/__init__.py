from . import fields
from . import signature
from . import types
from . import variant
from . import marshal
from . import names
from . import message
from . import match

from .fields import MessageType, Flags, HeaderField
from .types import (
    Array,
    ByteArray,
    Boolean,
    Byte,
    Dictionary,
    Double,
    Int16,
    Int32,
    Int64,
    ObjectPath,
    Signature,
    String,
    Struct,
    UInt16,
    UInt32,
    UInt64,
)
from .variant import Variant, box, unbox
from .marshal import Marshaller, Unmarshaller, Reader, encode, decode
from .message import Message, message_length
from .match import MatchRule, SignalArgs
from .signature import signature_of, signature_of_values


"""
kbus Protocol Layer
===================

This package defines the bus wire protocol: the type system, the value
codec, and the message envelope. It has no knowledge of sockets, threads,
or pending calls.

The protocol layer MUST NOT depend on any transport implementation.

---------------------------------------------------------------------

Layer Architecture Overview
---------------------------

Connection (kbus.connection)
    call(), emit(), subscribe(), serve()

    │
    ▼
Message Framing (message.py)
    Header fields, serial numbers, constructors for
    method calls, returns, errors and signals

    │
    ▼
Signal Filtering (match.py)
    MatchRule, SignalArgs

    │
    ▼
Value Codec (marshal.py)
    Marshaller, Unmarshaller, typed Reader
    Alignment, padding, length prefixes, byte order

    │
    ▼
Dynamic Value Box (variant.py)
    Variant, box(), unbox()

    │
    ▼
Wire Types (types.py)
    Byte, Int32, String, Array, Dictionary, ...

    │
    ▼
Type Signatures (signature.py)
    Validation, decomposition, inference, compatibility

    │
    ▼
Field Vocabulary (fields.py, names.py)
    Message types, flags, header field codes, limits,
    standard interface and error names, name validation

---------------------------------------------------------------------

Below the Protocol Layer (for context)
--------------------------------------

Session Layer (kbus.transport.session)
    Pending call correlation and signal subscriptions

Transport Layer (kbus.transport)
    Moves encoded messages
    - ZeroMQ
    - anything implementing kbus.transport.base.Transport

---------------------------------------------------------------------
"""


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
