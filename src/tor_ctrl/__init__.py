"""tor-ctrl - Async client for the Tor control port."""

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from tor_ctrl.constants import ConnectionState, Signal
from tor_ctrl.control import ControlClient, ReplyLine
from tor_ctrl.exceptions import (
    AuthenticationError,
    ConfigError,
    CookieFileError,
    NotConnectedError,
    ProtocolError,
    TorConnectionError,
    TorCtrlError,
    TransportError,
)
from tor_ctrl.utils.config import ControlConfig


def _get_version() -> str:
    """Get version from package metadata or VERSION file."""
    # Try installed package metadata first (works when installed)
    try:
        return version("tor-ctrl")
    except PackageNotFoundError:
        pass

    # Fall back to VERSION file (works in development)
    version_file = Path(__file__).parent.parent.parent / "VERSION"
    if version_file.exists():
        return version_file.read_text().strip()

    return "0.0.0"


__version__ = _get_version()

__all__ = [
    "AuthenticationError",
    "ConfigError",
    "ConnectionState",
    "ControlClient",
    "ControlConfig",
    "CookieFileError",
    "NotConnectedError",
    "ProtocolError",
    "ReplyLine",
    "Signal",
    "TorConnectionError",
    "TorCtrlError",
    "TransportError",
    "__version__",
]
