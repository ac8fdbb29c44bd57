"""
Test helper functions and utilities shared across test modules
"""
import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set, Tuple

from mail_extractor.core.models.email import MailMessage


def build_raw_message(
    subject: str = "Hello",
    sender: str = "Alice <alice@acme.io>",
    recipient: str = "bob@acme.io",
    date: str = "Tue, 14 May 2024 09:30:00 +0000",
    body: str = "First line\r\nSecond line",
) -> bytes:
    """RFC 822 style message with CRLF line endings, as served by RETR"""
    lines = [
        f"From: {sender}",
        f"To: {recipient}",
        f"Subject: {subject}",
        f"Date: {date}",
        "",
        body,
    ]
    return ("\r\n".join(lines) + "\r\n").encode("utf-8")


def make_message(uid: str = "uid-1", **kwargs) -> MailMessage:
    """MailMessage with sensible defaults"""
    defaults = {
        "sender": "alice@acme.io",
        "recipient": "bob@acme.io",
        "subject": "Test Subject",
        "body": "Test body",
        "date": datetime(2024, 5, 14, 9, 30, tzinfo=timezone.utc),
    }
    defaults.update(kwargs)
    return MailMessage(uid=uid, **defaults)


class FakePop3Server:
    """Scripted POP3 server on 127.0.0.1 for exercising the real client.

    ``messages`` holds (uid, content) pairs; message N is ``messages[N-1]``.
    The failure sets take 1-based message indexes; ``hang_up_on`` takes
    command verbs the server closes the connection on instead of replying.
    """

    def __init__(
        self,
        messages: Optional[List[Tuple[str, bytes]]] = None,
        username: str = "user@acme.io",
        password: str = "secret",
        greeting: bytes = b"+OK POP3 server ready\r\n",
    ):
        self.messages = list(messages or [])
        self.username = username
        self.password = password
        self.greeting = greeting

        self.uidl_failures: Set[int] = set()
        self.retr_failures: Set[int] = set()
        self.drop_on_retr: Set[int] = set()
        self.hang_up_on: Set[str] = set()
        self.stall_on_retr: Set[int] = set()
        self.truncate_on_retr: Set[int] = set()
        self.stat_reply: Optional[bytes] = None
        self.gate: Optional[asyncio.Event] = None

        self.commands: List[str] = []
        self.connections = 0
        self.closed_connections = 0
        self.connected = asyncio.Event()

        self.port: Optional[int] = None
        self._server: Optional[asyncio.AbstractServer] = None
        self._handlers: Set[asyncio.Task] = set()

    @property
    def settings(self) -> Dict[str, str]:
        """Stored-settings mapping pointing at this server"""
        return {
            "pop3_server": "127.0.0.1",
            "pop3_port": str(self.port),
            "username": self.username,
            "password": self.password,
            "use_ssl": "0",
        }

    async def start(self) -> "FakePop3Server":
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]
        return self

    async def stop(self) -> None:
        if self._server is None:
            return
        self._server.close()
        for task in list(self._handlers):
            task.cancel()
        if self._handlers:
            await asyncio.gather(*self._handlers, return_exceptions=True)
        await self._server.wait_closed()
        self._server = None

    async def wait_for_closed(self, count: int = 1, timeout: float = 2.0) -> bool:
        """Wait until ``count`` client connections have been closed"""
        deadline = asyncio.get_running_loop().time() + timeout
        while self.closed_connections < count:
            if asyncio.get_running_loop().time() > deadline:
                return False
            await asyncio.sleep(0.01)
        return True

    def sent(self, verb: str) -> List[str]:
        """Commands received that start with ``verb``"""
        return [command for command in self.commands if command.split(" ")[0] == verb]

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        task = asyncio.current_task()
        self._handlers.add(task)
        self.connections += 1
        self.connected.set()

        try:
            if self.gate is not None:
                await self.gate.wait()

            await self._write(writer, self.greeting)

            while True:
                line = await reader.readline()
                if not line:
                    break

                command = line.decode("utf-8").rstrip("\r\n")
                self.commands.append(command)
                verb, _, argument = command.partition(" ")

                if verb == "QUIT":
                    await self._write(writer, b"+OK bye\r\n")
                    break
                if not await self._respond(writer, verb, argument):
                    break

        except (ConnectionError, asyncio.CancelledError):
            pass

        finally:
            writer.close()
            self.closed_connections += 1
            self._handlers.discard(task)

    async def _respond(self, writer: asyncio.StreamWriter, verb: str, argument: str) -> bool:
        """Answer one command. Returns False to hang up."""
        if verb in self.hang_up_on:
            return False

        if verb == "USER":
            reply = b"+OK\r\n" if argument == self.username else b"-ERR unknown user\r\n"
            await self._write(writer, reply)

        elif verb == "PASS":
            reply = b"+OK logged in\r\n" if argument == self.password else b"-ERR invalid password\r\n"
            await self._write(writer, reply)

        elif verb == "STAT":
            size = sum(len(content) for _, content in self.messages)
            reply = self.stat_reply or f"+OK {len(self.messages)} {size}\r\n".encode()
            await self._write(writer, reply)

        elif verb == "UIDL":
            index = int(argument)
            if index in self.uidl_failures or not 0 < index <= len(self.messages):
                await self._write(writer, b"-ERR no such message\r\n")
            else:
                uid = self.messages[index - 1][0]
                await self._write(writer, f"+OK {index} {uid}\r\n".encode())

        elif verb == "RETR":
            index = int(argument)
            if index in self.drop_on_retr:
                return False
            if index in self.stall_on_retr:
                await asyncio.sleep(3600)
            if index in self.retr_failures or not 0 < index <= len(self.messages):
                await self._write(writer, b"-ERR no such message\r\n")
                return True

            content = self.messages[index - 1][1]
            await self._write(writer, f"+OK {len(content)} octets\r\n".encode())
            if index in self.truncate_on_retr:
                await self._write(writer, content)
                return False
            await self._write(writer, content + b".\r\n")

        else:
            await self._write(writer, b"-ERR unknown command\r\n")

        return True

    @staticmethod
    async def _write(writer: asyncio.StreamWriter, data: bytes) -> None:
        writer.write(data)
        await writer.drain()
