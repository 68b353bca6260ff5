"""Pytest configuration and fixtures."""

import asyncio
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio
from click.testing import CliRunner

PASSWORD = "secure-password"


class FakeControlPort:
    """Scripted stand-in for the Tor control port.

    Replies are looked up by exact command line in ``responses``; a value
    may be raw bytes or a list of chunks written one after another.
    Commands listed in ``close_after`` make the server drop the connection
    once their reply is sent. GETCONF and SETCONF round-trip through
    ``conf`` unless overridden.
    """

    def __init__(self, password: str | None = PASSWORD, cookie: bytes | None = None):
        self.password = password
        self.cookie = cookie
        self.allow_null_auth = password is None and cookie is None
        self.responses: dict[str, bytes | list[bytes]] = {}
        self.close_after: set[str] = set()
        self.conf: dict[str, str] = {"SocksPort": "9050"}
        self.received: list[str] = []
        self.connections = 0
        self.server: asyncio.AbstractServer | None = None
        self._writers: list[asyncio.StreamWriter] = []

    async def start_unix(self, socket_path: Path) -> None:
        self.server = await asyncio.start_unix_server(self._handle, path=str(socket_path))

    async def start_tcp(self) -> int:
        self.server = await asyncio.start_server(self._handle, host="127.0.0.1", port=0)
        return self.server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        for writer in self._writers:
            writer.close()
        if self.server is not None:
            self.server.close()
            await self.server.wait_closed()

    def _authenticate(self, argument: str) -> bytes:
        if not argument and self.allow_null_auth:
            return b"250 OK\r\n"
        if self.password is not None and argument == f'"{self.password}"':
            return b"250 OK\r\n"
        if self.cookie is not None and argument == self.cookie.hex():
            return b"250 OK\r\n"
        return (
            b"515 Authentication failed: Password did not match "
            b"HashedControlPassword value from configuration\r\n"
        )

    def reply_for(self, command: str) -> bytes | list[bytes]:
        if command in self.responses:
            return self.responses[command]

        verb, _, argument = command.partition(" ")
        if verb == "AUTHENTICATE":
            return self._authenticate(argument)
        if verb == "QUIT":
            return b"250 closing connection\r\n"
        if verb == "SETCONF":
            key, _, value = argument.partition("=")
            self.conf[key] = value
            return b"250 OK\r\n"
        if verb == "GETCONF":
            if argument in self.conf:
                return f"250 {argument}={self.conf[argument]}\r\n".encode()
            return f'552 Unrecognized configuration key "{argument}"\r\n'.encode()
        return b"250 OK\r\n"

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        self._writers.append(writer)
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                command = line.decode().rstrip("\r\n")
                self.received.append(command)

                reply = self.reply_for(command)
                for chunk in reply if isinstance(reply, list) else [reply]:
                    writer.write(chunk)
                    await writer.drain()

                if command == "QUIT" or command in self.close_after:
                    break
        except ConnectionError:
            pass
        finally:
            writer.close()


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def socket_path(temp_dir):
    """Short Unix socket path inside the temp directory."""
    return temp_dir / "control.sock"


@pytest_asyncio.fixture
async def control_port(socket_path):
    """Fake control port listening on a Unix socket, password protected."""
    fake = FakeControlPort()
    await fake.start_unix(socket_path)
    yield fake
    await fake.stop()


@pytest.fixture
def cookie_file(temp_dir):
    """32-byte authentication cookie file."""
    path = temp_dir / "control.authcookie"
    path.write_bytes(bytes(range(32)))
    return path


@pytest.fixture
def runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli():
    """Get the actual CLI command for testing."""
    from tor_ctrl.cli import main
    return main
