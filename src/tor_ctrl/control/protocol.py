"""Line protocol codec for the Tor control port.

Outbound commands are single lines terminated by CRLF. Inbound replies are
one or more lines of the form::

    <3-digit code><separator><message>

where the separator is ``-`` for a mid-reply line, ``+`` for a line followed
by a dot-terminated data block, and a space for the final line of a reply.
Lines may be terminated by CRLF or a bare LF.

Any status code of 400 or above marks a failure; everything below is
treated as success or informational.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any

from ..constants import (
    ASYNC_EVENT_CODES,
    DATA_SEPARATOR,
    DATA_TERMINATOR,
    END_SEPARATOR,
    LINE_TERMINATOR,
    REPLY_PREFIX_LENGTH,
    STATUS_ERROR_THRESHOLD,
)
from ..exceptions import ProtocolError

_LINE_SPLIT = re.compile(r"\r?\n")

Command = str | Sequence[str]


@dataclass(frozen=True)
class ReplyLine:
    """One status-code-prefixed line of a reply."""

    code: int
    message: str
    separator: str = END_SEPARATOR
    data: str | None = None

    @property
    def is_error(self) -> bool:
        """True when the status code signals a failure."""
        return self.code >= STATUS_ERROR_THRESHOLD

    @property
    def is_async_event(self) -> bool:
        """True for 6xx lines, which the daemon sends unsolicited."""
        return self.code in ASYNC_EVENT_CODES

    @property
    def raw(self) -> str:
        """Line as it appeared on the wire, without terminator."""
        return f"{self.code:03d}{self.separator}{self.message}"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result


def quote(value: str) -> str:
    """Wrap a value in literal double quotes.

    No escaping is applied; values containing a double quote are sent as is.
    """
    return f'"{value}"'


def join_command(command: Command) -> str:
    """Compose a command line from a pre-joined string or a token list."""
    if isinstance(command, str):
        return command
    return " ".join(command)


def format_command(command: Command) -> bytes:
    """Serialize a command to wire bytes.

    Args:
        command: Pre-formatted line, or tokens joined with single spaces

    Returns:
        UTF-8 bytes terminated by CRLF
    """
    return join_command(command).encode("utf-8") + LINE_TERMINATOR


def redact_command(command: Command) -> str:
    """Command line suitable for logs, with credentials removed."""
    line = join_command(command)
    verb, _, argument = line.partition(" ")
    if verb.upper() == "AUTHENTICATE" and argument:
        return f"{verb} <redacted>"
    return line


def parse_reply_line(line: str) -> ReplyLine:
    """Parse a single reply line.

    The code is the first three characters and the message is everything
    after the fixed four-character prefix, regardless of which separator
    character occupies the fourth position.

    Raises:
        ProtocolError: If the line is too short or the code is not numeric
    """
    if len(line) < REPLY_PREFIX_LENGTH:
        raise ProtocolError(f"Badly formatted reply line: {line!r}")

    code_text = line[:3]
    if not code_text.isdigit():
        raise ProtocolError(f"Badly formatted reply line: {line!r}")

    return ReplyLine(
        code=int(code_text),
        message=line[REPLY_PREFIX_LENGTH:],
        separator=line[3],
    )


def parse_reply(payload: bytes | str) -> list[ReplyLine]:
    """Parse a burst of reply lines.

    Splits on CRLF or LF, drops empty segments and parses each remaining
    line in order. Failure codes are not checked here; see
    :func:`raise_for_status`.
    """
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")
    return [parse_reply_line(line) for line in _LINE_SPLIT.split(payload) if line]


def raise_for_status(replies: Sequence[ReplyLine]) -> None:
    """Raise ProtocolError for the first line carrying a failure code."""
    for line in replies:
        if line.is_error:
            raise ProtocolError(line.message, code=line.code)


def first_reply(replies: Sequence[ReplyLine]) -> ReplyLine:
    """Return the first line of a reply."""
    if not replies:
        raise ProtocolError("Empty reply")
    return replies[0]


class ReplyAssembler:
    r"""Incrementally assemble complete replies from stream chunks.

    Bytes are buffered across calls to :meth:`feed` until whole lines are
    available. A reply is complete once a line with a space separator
    arrives. Data blocks following ``+`` lines are collected until the lone
    ``.`` terminator, with dot-stuffing removed, and attached to that line.

    Example:
        >>> assembler = ReplyAssembler()
        >>> assembler.feed(b"250-version=0.4.8.10\r\n")
        []
        >>> [r.message for r in assembler.feed(b"250 OK\r\n")[0]]
        ['version=0.4.8.10', 'OK']
    """

    def __init__(self) -> None:
        self._buffer = b""
        self._lines: list[ReplyLine] = []
        self._data_head: ReplyLine | None = None
        self._data_lines: list[str] = []
        self._error: ProtocolError | None = None

    @property
    def pending(self) -> bool:
        """True while a partial reply is buffered."""
        return bool(self._buffer or self._lines or self._data_head or self._error)

    def feed(self, chunk: bytes) -> list[list[ReplyLine] | ProtocolError]:
        """Add received bytes and return every reply completed by them.

        A malformed line fails the reply it belongs to. The rest of that
        reply is still consumed up to its end line, and a single
        ProtocolError is returned in its place so the caller stays in step
        with the daemon.
        """
        self._buffer += chunk
        completed: list[list[ReplyLine] | ProtocolError] = []

        while b"\n" in self._buffer:
            raw, _, self._buffer = self._buffer.partition(b"\n")
            line = raw.decode("utf-8", errors="replace").rstrip("\r")
            try:
                reply = self._consume(line)
            except ProtocolError as e:
                self._lines = []
                if self._error is None:
                    self._error = e
                continue
            if reply is None:
                continue

            if self._error is not None:
                completed.append(self._error)
                self._error = None
            else:
                completed.append(reply)

        return completed

    def _consume(self, line: str) -> list[ReplyLine] | None:
        if self._data_head is not None:
            if line == DATA_TERMINATOR:
                self._lines.append(
                    replace(self._data_head, data="\n".join(self._data_lines))
                )
                self._data_head = None
                self._data_lines = []
            else:
                self._data_lines.append(line[1:] if line.startswith("..") else line)
            return None

        if not line:
            return None

        parsed = parse_reply_line(line)
        if parsed.separator == DATA_SEPARATOR:
            self._data_head = parsed
            return None

        self._lines.append(parsed)
        if parsed.separator == END_SEPARATOR:
            reply, self._lines = self._lines, []
            return reply
        return None
