"""Application-wide constants.

Centralizes control-port defaults, status code thresholds and CLI exit codes.
"""

from enum import Enum
from typing import Final

# =============================================================================
# VERSION AND METADATA
# =============================================================================

APP_NAME: Final[str] = "tor-ctrl"

# =============================================================================
# CONNECTION DEFAULTS
# =============================================================================

DEFAULT_HOST: Final[str] = "localhost"
DEFAULT_PORT: Final[int] = 9051
DEFAULT_CONNECT_TIMEOUT: Final[float] = 10.0

# Bytes requested from the transport per read
READ_CHUNK_SIZE: Final[int] = 4096

# =============================================================================
# WIRE PROTOCOL
# =============================================================================

LINE_TERMINATOR: Final[bytes] = b"\r\n"

# 3-digit status code plus one separator character
REPLY_PREFIX_LENGTH: Final[int] = 4

# Separator (4th character) of a reply line
END_SEPARATOR: Final[str] = " "
DATA_SEPARATOR: Final[str] = "+"

# Data blocks end with a line holding a single dot
DATA_TERMINATOR: Final[str] = "."

STATUS_OK: Final[int] = 250
STATUS_ERROR_THRESHOLD: Final[int] = 400
# 6xx replies are asynchronous events, never command replies
ASYNC_EVENT_CODES: Final[range] = range(600, 700)


class ConnectionState(str, Enum):
    """Session connection state."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class Signal(str, Enum):
    """Signals accepted by the SIGNAL command."""

    RELOAD = "RELOAD"
    SHUTDOWN = "SHUTDOWN"
    DUMP = "DUMP"
    DEBUG = "DEBUG"
    HALT = "HALT"
    HUP = "HUP"
    INT = "INT"
    USR1 = "USR1"
    USR2 = "USR2"
    TERM = "TERM"
    NEWNYM = "NEWNYM"
    CLEARDNSCACHE = "CLEARDNSCACHE"
    HEARTBEAT = "HEARTBEAT"
    ACTIVE = "ACTIVE"
    DORMANT = "DORMANT"


# Observer event names
EVENT_CONNECT: Final[str] = "connect"
EVENT_CLOSE: Final[str] = "close"
EVENT_ERROR: Final[str] = "error"
EVENT_DATA: Final[str] = "data"
EVENT_ASYNC: Final[str] = "event"

OBSERVABLE_EVENTS: Final[frozenset[str]] = frozenset({
    EVENT_CONNECT, EVENT_CLOSE, EVENT_ERROR, EVENT_DATA, EVENT_ASYNC,
})

# =============================================================================
# ERROR CODES
# =============================================================================

class ExitCode(int, Enum):
    """CLI exit codes."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    CONNECTION_ERROR = 2
    AUTHENTICATION_ERROR = 3
    PROTOCOL_ERROR = 4
    CONFIG_ERROR = 5
    KEYBOARD_INTERRUPT = 130
