"""POP3 connection management - handles connection setup and cleanup."""

import asyncio
import socket
import ssl
import time
from dataclasses import dataclass
from typing import Optional

from mail_extractor.core.models.connection import ConnectionConfig
from mail_extractor.utils.errors import (
    ConnectError,
    ConnectErrorKind,
    NetworkError,
    NetworkTimeoutError,
    Pop3TransportError,
)
from mail_extractor.utils.logging import async_log_call, get_logger

from .constants import LINE_TERMINATOR, Pop3Command, Pop3Response, Timeouts

logger = get_logger(__name__)

STREAM_LIMIT = 1024 * 1024


@dataclass
class ConnectionStats:
    """Tracks POP3 connection metrics."""

    commands_sent: int = 0
    lines_read: int = 0
    bytes_received: int = 0
    connect_duration: float = 0.0

    def record_line(self, line: bytes) -> None:
        self.lines_read += 1
        self.bytes_received += len(line)

    def as_dict(self) -> dict:
        return {
            "commands_sent": self.commands_sent,
            "lines_read": self.lines_read,
            "bytes_received": self.bytes_received,
            "connect_duration": round(self.connect_duration, 3),
        }


class Pop3Connection:
    """Manages one POP3 session over an asyncio stream.

    The conversation is strictly sequential: one command, then its reply.
    A connection is used by a single task at a time.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        connect_timeout: float = Timeouts.POP3_CONNECT,
        read_timeout: Optional[float] = None,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        """Initialise the connection.

        Args:
            config: Mailbox server and credentials
            connect_timeout: Seconds allowed for TCP connect and TLS handshake
            read_timeout: Seconds to wait for each reply line, None waits forever
            ssl_context: TLS context for POP3S, defaults to the system trust store
        """
        self.config = config
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self._ssl_context = ssl_context
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._stats = ConnectionStats()

    @property
    def is_connected(self) -> bool:
        return self._writer is not None

    def get_stats(self) -> ConnectionStats:
        return self._stats

    ## Connect

    @async_log_call
    async def connect(self) -> "Pop3Connection":
        """Open the stream and authenticate.

        Returns:
            This connection, authenticated and ready for commands

        Raises:
            ConnectError: If the server is unreachable or rejects the login.
                The socket is closed before the error is raised.
        """
        if self.is_connected:
            return self

        start_time = time.monotonic()
        await self._open_stream()

        try:
            await self._handshake()
        except ConnectError:
            await self._close_transport()
            raise
        except NetworkTimeoutError as e:
            await self._close_transport()
            raise ConnectError(ConnectErrorKind.TIMEOUT, str(e)) from e
        except Pop3TransportError as e:
            await self._close_transport()
            raise ConnectError(ConnectErrorKind.REFUSED, str(e)) from e
        except BaseException:
            await self._close_transport()
            raise

        self._stats.connect_duration = time.monotonic() - start_time
        logger.info(
            "POP3 connection established",
            extra={
                "context": {
                    "server": self.config.server,
                    "port": self.config.port,
                    "duration_seconds": round(self._stats.connect_duration, 2),
                }
            },
        )
        return self

    async def _open_stream(self) -> None:
        server = self.config.server
        port = self.config.port
        ssl_context = None
        if self.config.use_ssl:
            ssl_context = self._ssl_context or ssl.create_default_context()

        logger.info(f"Connecting to POP3 server {server}:{port} (ssl={self.config.use_ssl})")

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(
                    server,
                    port,
                    ssl=ssl_context,
                    server_hostname=server if ssl_context else None,
                    limit=STREAM_LIMIT,
                ),
                timeout=self.connect_timeout,
            )

        except asyncio.TimeoutError as e:
            logger.warning(f"POP3 connection to {server}:{port} timed out")
            raise ConnectError(
                ConnectErrorKind.TIMEOUT,
                f"no response within {self.connect_timeout:g}s",
                details={"server": server, "port": port},
            ) from e

        except socket.gaierror as e:
            logger.warning(f"Could not resolve POP3 server {server}: {e}")
            raise ConnectError(
                ConnectErrorKind.DNS_FAILURE,
                str(e),
                details={"server": server, "port": port},
            ) from e

        except OSError as e:
            logger.warning(f"POP3 connection to {server}:{port} failed: {e}")
            raise ConnectError(
                ConnectErrorKind.REFUSED,
                str(e),
                details={"server": server, "port": port},
            ) from e

    async def _handshake(self) -> None:
        greeting = await self.read_line()
        if Pop3Response.OK not in greeting:
            raise ConnectError(
                ConnectErrorKind.GREETING_INVALID,
                details={"server": self.config.server},
            )

        response = await self.command(Pop3Command.USER, self.config.username)
        if Pop3Response.OK not in response:
            raise ConnectError(
                ConnectErrorKind.USER_REJECTED,
                details={"server": self.config.server},
            )

        response = await self.command(
            Pop3Command.PASS, self.config.effective_password, sensitive=True
        )
        if Pop3Response.OK not in response:
            raise ConnectError(
                ConnectErrorKind.AUTH_FAILED,
                details={"server": self.config.server},
            )

    ## Wire I/O

    async def send_command(self, command: str, *args, sensitive: bool = False) -> None:
        """Write one CRLF-terminated command line."""
        if self._writer is None:
            raise Pop3TransportError("POP3 connection is not open")

        line = " ".join([command, *(str(arg) for arg in args)])
        if sensitive:
            logger.debug(f"C: {command} ****")
        else:
            logger.debug(f"C: {line}")

        try:
            self._writer.write(line.encode("utf-8") + LINE_TERMINATOR)
            await self._writer.drain()
        except OSError as e:
            raise Pop3TransportError(
                f"Failed to send {command}: {e}", details={"command": command}
            ) from e

        self._stats.commands_sent += 1

    async def read_line(self) -> bytes:
        """Read one line including its terminator.

        Returns b"" once the server has closed the stream. Lines longer than
        the stream limit are returned in pieces.
        """
        if self._reader is None:
            raise Pop3TransportError("POP3 connection is not open")

        try:
            if self.read_timeout is None:
                line = await self._read_raw_line()
            else:
                line = await asyncio.wait_for(self._read_raw_line(), timeout=self.read_timeout)
        except asyncio.TimeoutError as e:
            raise NetworkTimeoutError(
                f"No reply from POP3 server within {self.read_timeout:g}s",
                details={"server": self.config.server},
            ) from e
        except OSError as e:
            raise Pop3TransportError(
                f"POP3 connection lost: {e}", details={"server": self.config.server}
            ) from e

        self._stats.record_line(line)
        return line

    async def _read_raw_line(self) -> bytes:
        try:
            return await self._reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            return e.partial
        except asyncio.LimitOverrunError as e:
            return await self._reader.readexactly(max(e.consumed, 1))

    async def command(self, command: str, *args, sensitive: bool = False) -> bytes:
        """Send a command and return its single-line reply.

        A server that has hung up gives b"", which callers treat like any
        other reply without ``+OK``. Only a read timeout raises.

        Raises:
            NetworkTimeoutError: If the read timeout expires first
        """
        try:
            await self.send_command(command, *args, sensitive=sensitive)
            response = await self.read_line()
        except Pop3TransportError as e:
            logger.debug(f"No reply to {command}: {e}")
            return b""

        if not response:
            logger.debug(f"Server closed the connection after {command}")
            return response
        logger.debug(f"S: {response.rstrip().decode('utf-8', errors='replace')}")
        return response

    ## Disconnect

    @async_log_call
    async def disconnect(self) -> None:
        """Say QUIT and close the socket. Safe to call more than once."""
        if self._writer is None:
            return

        try:
            await asyncio.wait_for(
                self.command(Pop3Command.QUIT), timeout=Timeouts.POP3_QUIT
            )
        except (NetworkError, OSError, asyncio.TimeoutError) as e:
            logger.debug(f"Error during POP3 QUIT: {e}")
        finally:
            await self._close_transport()
            logger.info("POP3 session closed", extra={"context": self._stats.as_dict()})

    async def _close_transport(self) -> None:
        writer = self._writer
        self._reader = None
        self._writer = None
        if writer is None:
            return

        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug(f"Error closing POP3 socket: {e}")

    ## Context Manager Helpers

    async def __aenter__(self) -> "Pop3Connection":
        return await self.connect()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
