"""Protocol constants.

Keep these in one place to avoid stringly-typed message handling.
"""

import enum


# Major protocol version carried in every primary header.
PROTOCOL_VERSION = 1

# Endianness markers; the first byte of every message.
LITTLE = 'l'
BIG = 'B'

# Limits from the wire protocol definition.
MAX_SIGNATURE_LENGTH = 255
MAX_ARRAY_LENGTH = 1 << 26
MAX_MESSAGE_LENGTH = 1 << 27
MAX_ARRAY_DEPTH = 32
MAX_STRUCT_DEPTH = 32
MAX_DEPTH = 64
MAX_NAME_LENGTH = 255


class MessageType(enum.IntEnum):
    INVALID = 0
    METHOD_CALL = 1
    METHOD_RETURN = 2
    ERROR = 3
    SIGNAL = 4


class Flags(enum.IntFlag):
    NONE = 0
    NO_REPLY_EXPECTED = 0x1
    NO_AUTO_START = 0x2
    ALLOW_INTERACTIVE_AUTHORIZATION = 0x4


class HeaderField(enum.IntEnum):
    PATH = 1
    INTERFACE = 2
    MEMBER = 3
    ERROR_NAME = 4
    REPLY_SERIAL = 5
    DESTINATION = 6
    SENDER = 7
    SIGNATURE = 8
    UNIX_FDS = 9


# The signature each header field's variant must carry.

HEADER_SIGNATURES = {
    HeaderField.PATH: 'o',
    HeaderField.INTERFACE: 's',
    HeaderField.MEMBER: 's',
    HeaderField.ERROR_NAME: 's',
    HeaderField.REPLY_SERIAL: 'u',
    HeaderField.DESTINATION: 's',
    HeaderField.SENDER: 's',
    HeaderField.SIGNATURE: 'g',
    HeaderField.UNIX_FDS: 'u',
}

# Header fields that must be present, per message type.

REQUIRED_FIELDS = {
    MessageType.METHOD_CALL: (HeaderField.PATH, HeaderField.MEMBER),
    MessageType.METHOD_RETURN: (HeaderField.REPLY_SERIAL,),
    MessageType.ERROR: (HeaderField.ERROR_NAME, HeaderField.REPLY_SERIAL),
    MessageType.SIGNAL: (HeaderField.PATH, HeaderField.INTERFACE, HeaderField.MEMBER),
}


# Standard interfaces.

BUS_NAME = 'org.freedesktop.DBus'
BUS_PATH = '/org/freedesktop/DBus'
INTROSPECTABLE = 'org.freedesktop.DBus.Introspectable'
PROPERTIES = 'org.freedesktop.DBus.Properties'
OBJECT_MANAGER = 'org.freedesktop.DBus.ObjectManager'
PEER = 'org.freedesktop.DBus.Peer'

# Standard error names.

ERROR_FAILED = 'org.freedesktop.DBus.Error.Failed'
ERROR_UNKNOWN_METHOD = 'org.freedesktop.DBus.Error.UnknownMethod'
ERROR_INVALID_ARGS = 'org.freedesktop.DBus.Error.InvalidArgs'
