"""Custom exceptions for tor-ctrl.

Each exception type represents a category of error.
Catch specific exceptions to handle errors appropriately.
"""


class TorCtrlError(Exception):
    """Base exception for all tor-ctrl errors."""

    pass


class TorConnectionError(TorCtrlError, ConnectionError):
    """Raised when the control connection cannot be established."""

    pass


class NotConnectedError(TorConnectionError):
    """Raised when a command is issued on a disconnected session."""

    pass


class TransportError(TorConnectionError):
    """Raised when the stream fails or closes while an operation is pending."""

    pass


class AuthenticationError(TorCtrlError):
    """Raised when the daemon rejects the AUTHENTICATE command."""

    pass


class ProtocolError(TorCtrlError):
    """Raised when a reply carries a failure status or is malformed.

    Attributes:
        code: Status code of the offending line (None when unparseable)
        message: Message text of the offending line
    """

    def __init__(self, message: str = "", code: int | None = None):
        super().__init__(message)
        self.code = code
        self.message = message


class CookieFileError(TorCtrlError):
    """Raised when the authentication cookie file cannot be read."""

    pass


class ConfigError(TorCtrlError):
    """Raised when configuration is invalid or missing."""

    pass
