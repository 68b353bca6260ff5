r"""Tor control port client.

Client:
    >>> from tor_ctrl.control import ControlClient
    >>> async with ControlClient(password="secure-password") as client:
    ...     result = await client.get_info("version")

Codec:
    >>> from tor_ctrl.control import format_command, parse_reply
    >>> format_command(["GETINFO", "version"])
    b'GETINFO version\r\n'
    >>> parse_reply(b"250 OK\r\n")
    [ReplyLine(code=250, message='OK', separator=' ', data=None)]
"""

from .client import ControlClient, read_cookie
from .protocol import (
    ReplyAssembler,
    ReplyLine,
    first_reply,
    format_command,
    parse_reply,
    parse_reply_line,
    quote,
    raise_for_status,
)

__all__ = [
    # Client
    "ControlClient",
    "read_cookie",
    # Protocol
    "ReplyAssembler",
    "ReplyLine",
    "first_reply",
    "format_command",
    "parse_reply",
    "parse_reply_line",
    "quote",
    "raise_for_status",
]
