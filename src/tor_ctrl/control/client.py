"""Async client for the Tor control port.

Connects over TCP or a Unix domain socket, authenticates, and exchanges
commands with the daemon one at a time.

Example:
    >>> async with ControlClient(password="secure-password") as client:
    ...     result = await client.get_new_identity()
    ...     print(result.code, result.message)
    250 OK
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import Any

from ..constants import (
    EVENT_ASYNC,
    EVENT_CLOSE,
    EVENT_CONNECT,
    EVENT_DATA,
    EVENT_ERROR,
    OBSERVABLE_EVENTS,
    READ_CHUNK_SIZE,
    STATUS_OK,
    ConnectionState,
    Signal,
)
from ..exceptions import (
    AuthenticationError,
    CookieFileError,
    NotConnectedError,
    ProtocolError,
    TorConnectionError,
    TransportError,
)
from ..utils.config import ControlConfig
from .protocol import (
    Command,
    ReplyAssembler,
    ReplyLine,
    first_reply,
    format_command,
    quote,
    raise_for_status,
    redact_command,
)

logger = logging.getLogger(__name__)


def read_cookie(cookie_path: str | Path) -> str:
    """Read an authentication cookie file and hex-encode it.

    Raises:
        CookieFileError: If the file cannot be read
    """
    try:
        return Path(cookie_path).read_bytes().hex()
    except OSError as e:
        raise CookieFileError(f"Failed to read cookie file: {e}") from e


class ControlClient:
    """Async client for one Tor control session.

    The session is either disconnected or connected. ``connect()`` opens the
    transport and authenticates; ``disconnect()`` sends QUIT and releases the
    transport. A background task reads the stream, so a daemon-side close is
    noticed even while no command is pending.

    Commands are serialized: at most one is in flight per session.

    Context manager:
        >>> async with ControlClient(socket_path="/run/tor/control",
        ...                          cookie_path="/run/tor/control.authcookie") as client:
        ...     replies = await client.send_command(["GETINFO", "version"])
    """

    def __init__(self, config: ControlConfig | None = None, **options: Any):
        """Initialize client.

        Args:
            config: Connection settings (defaults to localhost:9051)
            **options: Overrides for individual ControlConfig fields
        """
        self.config = replace(config or ControlConfig(), **options)
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._reader_task: asyncio.Task | None = None
        self._replies: asyncio.Queue | None = None
        self._state = ConnectionState.DISCONNECTED
        self._command_lock = asyncio.Lock()
        self._connect_lock = asyncio.Lock()
        self._callbacks: dict[str, list[Callable[..., Any]]] = {
            name: [] for name in OBSERVABLE_EVENTS
        }

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    async def __aenter__(self) -> "ControlClient":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.disconnect()

    # =========================================================================
    # Observers
    # =========================================================================

    def on(self, event_name: str, callback: Callable[..., Any]) -> None:
        """Register a callback: 'connect', 'close', 'error', 'data', 'event'."""
        if event_name not in self._callbacks:
            raise ValueError(f"Unknown event: {event_name}")
        self._callbacks[event_name].append(callback)

    def off(self, event_name: str, callback: Callable[..., Any]) -> None:
        """Remove a previously registered callback."""
        with contextlib.suppress(KeyError, ValueError):
            self._callbacks[event_name].remove(callback)

    def _fire(self, event_name: str, *args: Any) -> None:
        for callback in list(self._callbacks[event_name]):
            try:
                callback(*args)
            except Exception:
                logger.warning(f"Callback for '{event_name}' failed", exc_info=True)

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    async def connect(self) -> None:
        """Open the transport and authenticate.

        Returns once the session is ready for commands. On failure every
        partially opened resource is released before the error propagates.

        Raises:
            TorConnectionError: If the daemon is unreachable or the first
                reply is not 250
            AuthenticationError: If the daemon rejects the credentials
            CookieFileError: If the cookie file cannot be read
        """
        async with self._connect_lock:
            if self._state is ConnectionState.CONNECTED:
                return

            await self._open_transport()
            try:
                await self._handshake()
            except BaseException:
                await self._teardown()
                raise

            self._state = ConnectionState.CONNECTED
            logger.info(f"Connected to control port at {self.config.address}")
            self._fire(EVENT_CONNECT)

    async def disconnect(self) -> None:
        """Send QUIT and close the transport.

        QUIT is best-effort: its failure is logged and the transport is
        released regardless. Calling this on a disconnected session is a
        no-op.
        """
        if self._writer is None:
            self._state = ConnectionState.DISCONNECTED
            return

        try:
            await self.quit()
        except (TorConnectionError, ProtocolError) as e:
            logger.warning(f"QUIT failed during disconnect: {e}")
        finally:
            await self._teardown()

    async def _open_transport(self) -> None:
        cfg = self.config
        try:
            if cfg.socket_path:
                reader, writer = await asyncio.open_unix_connection(str(cfg.socket_path))
            else:
                reader, writer = await asyncio.open_connection(cfg.host, cfg.port)
        except FileNotFoundError as e:
            self._fire(EVENT_ERROR, e)
            raise TorConnectionError(f"Control socket not found: {cfg.address}") from e
        except ConnectionRefusedError as e:
            self._fire(EVENT_ERROR, e)
            raise TorConnectionError(
                f"Control port not accepting connections: {cfg.address}"
            ) from e
        except OSError as e:
            self._fire(EVENT_ERROR, e)
            raise TorConnectionError(f"TorControl connection error: {e}") from e

        logger.debug(f"Transport open to {cfg.address}")
        self._reader = reader
        self._writer = writer
        self._replies = asyncio.Queue()
        self._reader_task = asyncio.create_task(self._read_loop(reader, self._replies))

    async def _handshake(self) -> None:
        # The daemon stays silent until the first command, so the reply to
        # AUTHENTICATE is the first data seen on the stream.
        cfg = self.config
        if cfg.password:
            credential = quote(cfg.password)
        elif cfg.cookie_path:
            credential = read_cookie(cfg.cookie_path)
        else:
            credential = None

        result = await self._authenticate(credential)
        if result.code != STATUS_OK:
            raise TorConnectionError(f"TorControl connection error: {result.raw}")

    async def _teardown(self) -> None:
        task, self._reader_task = self._reader_task, None
        writer, self._writer = self._writer, None
        was_connected = self._state is ConnectionState.CONNECTED
        self._reader = None
        self._state = ConnectionState.DISCONNECTED

        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if writer is not None:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()
            if was_connected:
                logger.info(f"Disconnected from control port at {self.config.address}")
                self._fire(EVENT_CLOSE)

    def _transport_lost(self, error: TransportError) -> None:
        """Record a daemon-side close or stream failure."""
        if self._replies is not None:
            self._replies.put_nowait(error)

        writer, self._writer = self._writer, None
        was_connected = self._state is ConnectionState.CONNECTED
        self._reader = None
        self._reader_task = None
        self._state = ConnectionState.DISCONNECTED

        if writer is not None:
            writer.close()
            if was_connected:
                logger.info(f"Control connection lost: {error}")
                self._fire(EVENT_CLOSE)

    async def _read_loop(self, reader: asyncio.StreamReader, replies: asyncio.Queue) -> None:
        assembler = ReplyAssembler()
        try:
            while True:
                chunk = await reader.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                logger.debug(f"recv: {chunk!r}")
                for reply in assembler.feed(chunk):
                    if isinstance(reply, list) and reply[0].is_async_event:
                        self._fire(EVENT_ASYNC, reply)
                    else:
                        replies.put_nowait(reply)
        except OSError as e:
            logger.warning(f"Control connection error: {e}")
            self._fire(EVENT_ERROR, e)
            self._transport_lost(TransportError(f"TorControl connection error: {e}"))
            return

        if assembler.pending:
            logger.debug("Connection closed with a partial reply buffered")
        self._transport_lost(TransportError("TorControl connection closed"))

    # =========================================================================
    # Commands
    # =========================================================================

    async def send_command(self, command: Command) -> list[ReplyLine]:
        """Send a command and return every line of its reply.

        Example:
            >>> await client.send_command(["GETINFO", "version"])
            [ReplyLine(code=250, message='version=0.4.8.10', separator='-', data=None),
             ReplyLine(code=250, message='OK', separator=' ', data=None)]

        Args:
            command: Pre-formatted line, or tokens joined by single spaces

        Returns:
            Reply lines in wire order

        Raises:
            NotConnectedError: If the session has no transport
            ProtocolError: If any reply line has a code of 400 or above
            TransportError: If the stream fails or closes before the reply
        """
        async with self._command_lock:
            writer = self._writer
            replies = self._replies
            if writer is None or replies is None:
                error = NotConnectedError("TorControl not connected")
                self._fire(EVENT_ERROR, error)
                raise error

            logger.debug(f"send: {redact_command(command)}")
            try:
                writer.write(format_command(command))
                await writer.drain()
            except OSError as e:
                raise TransportError(f"Failed to write command: {e}") from e

            reply = await replies.get()

        if isinstance(reply, Exception):
            raise reply

        for line in reply:
            self._fire(EVENT_DATA, line.message)

        raise_for_status(reply)
        return reply

    async def _request(self, command: Command) -> ReplyLine:
        return first_reply(await self.send_command(command))

    async def _authenticate(self, credential: str | None) -> ReplyLine:
        tokens = ["AUTHENTICATE"] if credential is None else ["AUTHENTICATE", credential]
        try:
            return await self._request(tokens)
        except ProtocolError as e:
            raise AuthenticationError(f"Authentication failed: {e.message}") from e

    # =========================================================================
    # Config
    # =========================================================================

    async def authenticate(self, password: str) -> ReplyLine:
        """Authenticate with a password (``AUTHENTICATE "password"``)."""
        return await self._authenticate(quote(password))

    async def authenticate_cookie_file(self, cookie_path: str | Path) -> ReplyLine:
        """Authenticate with the hex-encoded contents of a cookie file."""
        return await self._authenticate(read_cookie(cookie_path))

    async def quit(self) -> ReplyLine:
        return await self._request("QUIT")

    async def get_config(self, key: str) -> str:
        """Get a configuration value.

        Example:
            >>> await client.get_config("SocksPort")
            '9050'

        Raises:
            ProtocolError: If the reply carries no ``key=value`` pair
        """
        result = await self._request(["GETCONF", key])
        name, sep, value = result.message.partition("=")
        if not sep:
            raise ProtocolError(f"Unexpected GETCONF reply: {result.message}", code=result.code)
        return value

    async def set_config(self, key: str, value: str) -> ReplyLine:
        return await self._request(["SETCONF", f"{key}={value}"])

    async def reset_config(self, key: str) -> ReplyLine:
        return await self._request(["RESETCONF", key])

    # =========================================================================
    # Signals
    # =========================================================================

    async def signal(self, signal: Signal | str) -> list[ReplyLine]:
        """Send a signal and return the full reply."""
        name = signal.value if isinstance(signal, Signal) else signal
        return await self.send_command(["SIGNAL", name])

    async def _signal_first(self, signal: Signal) -> ReplyLine:
        return first_reply(await self.signal(signal))

    async def signal_reload(self) -> ReplyLine:
        return await self._signal_first(Signal.RELOAD)

    async def signal_shutdown(self) -> ReplyLine:
        return await self._signal_first(Signal.SHUTDOWN)

    async def signal_dump(self) -> ReplyLine:
        return await self._signal_first(Signal.DUMP)

    async def signal_debug(self) -> ReplyLine:
        return await self._signal_first(Signal.DEBUG)

    async def signal_halt(self) -> ReplyLine:
        return await self._signal_first(Signal.HALT)

    async def signal_term(self) -> ReplyLine:
        return await self._signal_first(Signal.TERM)

    async def signal_newnym(self) -> ReplyLine:
        return await self._signal_first(Signal.NEWNYM)

    async def signal_clear_dns_cache(self) -> ReplyLine:
        return await self._signal_first(Signal.CLEARDNSCACHE)

    async def signal_usr1(self) -> ReplyLine:
        return await self._signal_first(Signal.USR1)

    async def signal_usr2(self) -> ReplyLine:
        return await self._signal_first(Signal.USR2)

    # =========================================================================
    # Misc
    # =========================================================================

    async def get_info(self, key: str) -> ReplyLine:
        """Query daemon information.

        Example:
            >>> (await client.get_info("version")).message
            'version=0.4.8.10'
        """
        return await self._request(["GETINFO", key])

    async def map_address(self, address: str, target: str) -> ReplyLine:
        """Map an address to a target (``MAPADDRESS address=target``)."""
        return await self._request(["MAPADDRESS", f"{address}={target}"])

    # =========================================================================
    # Circuits and streams
    # =========================================================================

    async def extend_circuit(self, circuit_id: str) -> ReplyLine:
        return await self._request(["EXTENDCIRCUIT", circuit_id])

    async def set_circuit_purpose(self, circuit_id: str, purpose: str) -> ReplyLine:
        return await self._request(["SETCIRCUITPURPOSE", circuit_id, purpose])

    async def set_router_purpose(self, nickname_or_key: str, purpose: str) -> ReplyLine:
        return await self._request(["SETROUTERPURPOSE", nickname_or_key, purpose])

    async def set_stream(self, stream_id: str, reason: str) -> ReplyLine:
        """Close a stream (``CLOSESTREAM stream_id reason``)."""
        return await self._request(["CLOSESTREAM", stream_id, reason])

    async def close_circuit(self, circuit_id: str) -> ReplyLine:
        return await self._request(["CLOSECIRCUIT", circuit_id])

    async def attach_stream(
        self,
        stream_id: str,
        circuit_id: str,
        hop: int | None = None,
    ) -> ReplyLine:
        """Attach a stream to a circuit.

        An absent hop is sent as an empty trailing token.
        """
        return await self._request(
            ["ATTACHSTREAM", stream_id, circuit_id, str(hop) if hop is not None else ""]
        )

    # =========================================================================
    # Alias
    # =========================================================================

    async def get_new_identity(self) -> ReplyLine:
        """Alias for :meth:`signal_newnym`."""
        return await self.signal_newnym()
