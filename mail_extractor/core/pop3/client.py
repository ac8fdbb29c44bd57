"""POP3 client - mailbox queries on top of an authenticated connection."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from mail_extractor.core.models.connection import ConnectionConfig
from mail_extractor.core.models.email import RawMessage
from mail_extractor.utils.errors import FetchError, FetchErrorKind, Pop3TransportError
from mail_extractor.utils.logging import get_logger

from .connection import Pop3Connection
from .constants import MESSAGE_TERMINATOR, Pop3Command, Pop3Response, Timeouts

logger = get_logger(__name__)


class Pop3Client:
    """STAT, UIDL and RETR over a :class:`Pop3Connection`.

    A read timeout (``NetworkTimeoutError``) propagates unchanged. A message
    the server will not hand over, including a reply lost to a hang-up,
    raises ``FetchError`` and the caller moves on to the next one.
    """

    def __init__(self, connection: Pop3Connection):
        self.connection = connection

    async def stat_count(self) -> int:
        """Number of messages in the mailbox, 0 when the reply is unusable."""
        response = await self.connection.command(Pop3Command.STAT)
        parts = response.strip().split()

        if len(parts) < 2 or parts[0] != Pop3Response.OK:
            logger.warning(f"Unexpected STAT reply: {response!r}")
            return 0

        try:
            return int(parts[1])
        except ValueError:
            logger.warning(f"Unexpected STAT reply: {response!r}")
            return 0

    async def fetch_uid(self, index: int) -> str:
        """Unique id of message ``index`` from a single-message UIDL."""
        response = await self.connection.command(Pop3Command.UIDL, index)
        parts = response.strip().split()

        if len(parts) < 3 or parts[0] != Pop3Response.OK:
            logger.debug(f"UIDL {index} gave no uid: {response!r}")
            raise FetchError(FetchErrorKind.UID_UNAVAILABLE, index)

        return parts[2].decode("utf-8", errors="replace")

    async def retrieve(self, index: int) -> bytes:
        """Full content of message ``index``.

        Lines are kept byte for byte (no dot-unstuffing) up to the lone
        ``.`` terminator. If the server closes the stream first, whatever
        arrived so far is the message.
        """
        response = await self.connection.command(Pop3Command.RETR, index)
        if Pop3Response.OK not in response:
            logger.debug(f"RETR {index} refused: {response!r}")
            raise FetchError(FetchErrorKind.RETRIEVAL_FAILED, index)

        lines = []
        while True:
            try:
                line = await self.connection.read_line()
            except Pop3TransportError as e:
                logger.debug(f"RETR {index} ended early: {e}")
                break
            if not line or line == MESSAGE_TERMINATOR:
                break
            lines.append(line)

        return b"".join(lines)

    async def fetch_message(self, index: int) -> RawMessage:
        """UIDL then RETR for one message."""
        uid = await self.fetch_uid(index)
        content = await self.retrieve(index)
        return RawMessage(index=index, uid=uid, content=content)


@asynccontextmanager
async def pop3_session(
    config: ConnectionConfig,
    connect_timeout: float = Timeouts.POP3_CONNECT,
    read_timeout: Optional[float] = None,
    connection: Optional[Pop3Connection] = None,
) -> AsyncIterator[Pop3Client]:
    """Connect, authenticate and yield a client; always disconnects on exit.

    Raises:
        ConnectError: If the session could not be established
    """
    connection = connection or Pop3Connection(
        config, connect_timeout=connect_timeout, read_timeout=read_timeout
    )
    async with connection:
        yield Pop3Client(connection)
