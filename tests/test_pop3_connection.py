"""
Tests for the POP3 connection lifecycle

Tests cover:
- Successful login handshake
- Each connect failure kind
- Socket release on failure and on disconnect
- Password never written to the log
"""
import asyncio
import socket
from unittest.mock import patch

import pytest

from mail_extractor.core.models.connection import ConnectionConfig
from mail_extractor.core.pop3.connection import Pop3Connection
from mail_extractor.utils.errors import (
    ConnectError,
    ConnectErrorKind,
    ErrorCategory,
    NetworkTimeoutError,
)

from .test_helpers import FakePop3Server


def _config(server: FakePop3Server, **overrides) -> ConnectionConfig:
    values = {**server.settings, **overrides}
    return ConnectionConfig.from_mapping(values)


class TestConnect:
    """Tests for the connect handshake"""

    async def test_connect_authenticates(self, pop3_server):
        """Test greeting, USER and PASS succeed against a valid server"""
        connection = Pop3Connection(_config(pop3_server))
        await connection.connect()

        assert connection.is_connected
        assert pop3_server.sent("USER") == ["USER user@acme.io"]
        assert pop3_server.sent("PASS") == ["PASS secret"]

        await connection.disconnect()

    async def test_app_password_takes_precedence(self, pop3_server):
        """Test the app password is sent instead of the regular one"""
        pop3_server.password = "app-pass"
        config = _config(pop3_server, password="ignored", app_password="app-pass")

        async with Pop3Connection(config) as connection:
            assert connection.is_connected

        assert pop3_server.sent("PASS") == ["PASS app-pass"]

    async def test_invalid_greeting(self):
        """Test a greeting without +OK fails and the socket is closed first"""
        server = await FakePop3Server(greeting=b"-ERR go away\r\n").start()
        try:
            connection = Pop3Connection(_config(server))

            with pytest.raises(ConnectError) as exc_info:
                await connection.connect()

            assert exc_info.value.kind == ConnectErrorKind.GREETING_INVALID
            assert exc_info.value.message == "Invalid server greeting"
            assert not connection.is_connected
            assert await server.wait_for_closed(1)
            assert server.sent("USER") == []
        finally:
            await server.stop()

    async def test_user_rejected(self, pop3_server):
        """Test an unknown user maps to USER_REJECTED"""
        connection = Pop3Connection(_config(pop3_server, username="nobody"))

        with pytest.raises(ConnectError) as exc_info:
            await connection.connect()

        assert exc_info.value.kind == ConnectErrorKind.USER_REJECTED
        assert exc_info.value.category == ErrorCategory.AUTHENTICATION
        assert pop3_server.sent("PASS") == []
        assert await pop3_server.wait_for_closed(1)

    async def test_wrong_password(self, pop3_server):
        """Test a rejected password maps to AUTH_FAILED"""
        connection = Pop3Connection(_config(pop3_server, password="wrong"))

        with pytest.raises(ConnectError) as exc_info:
            await connection.connect()

        assert exc_info.value.kind == ConnectErrorKind.AUTH_FAILED
        assert exc_info.value.message == "Authentication failed. Check password/app password."
        assert not connection.is_connected

    @pytest.mark.parametrize(
        "verb,kind",
        [("USER", ConnectErrorKind.USER_REJECTED), ("PASS", ConnectErrorKind.AUTH_FAILED)],
    )
    async def test_hang_up_during_login(self, pop3_server, verb, kind):
        """Test a server closing instead of replying fails that login step"""
        pop3_server.hang_up_on.add(verb)
        connection = Pop3Connection(_config(pop3_server))

        with pytest.raises(ConnectError) as exc_info:
            await connection.connect()

        assert exc_info.value.kind == kind
        assert not connection.is_connected
        assert await pop3_server.wait_for_closed(1)

    async def test_refused(self):
        """Test connecting to a closed port maps to REFUSED"""
        server = await FakePop3Server().start()
        port = server.port
        await server.stop()

        config = ConnectionConfig(server="127.0.0.1", port=port, username="u", password="p", use_ssl=False)
        connection = Pop3Connection(config)

        with pytest.raises(ConnectError) as exc_info:
            await connection.connect()

        assert exc_info.value.kind == ConnectErrorKind.REFUSED
        assert exc_info.value.message.startswith("Connection failed")
        assert not connection.is_connected

    async def test_timeout(self):
        """Test a connect that never completes maps to TIMEOUT"""

        async def never_connects(*args, **kwargs):
            await asyncio.sleep(10)

        config = ConnectionConfig(server="10.255.255.1", username="u", password="p")
        connection = Pop3Connection(config, connect_timeout=0.05)

        with patch(
            "mail_extractor.core.pop3.connection.asyncio.open_connection",
            side_effect=never_connects,
        ):
            with pytest.raises(ConnectError) as exc_info:
                await connection.connect()

        assert exc_info.value.kind == ConnectErrorKind.TIMEOUT
        assert not connection.is_connected

    async def test_dns_failure(self):
        """Test an unresolvable host maps to DNS_FAILURE"""
        config = ConnectionConfig(server="no-such-host.invalid", username="u", password="p")
        connection = Pop3Connection(config)

        with patch(
            "mail_extractor.core.pop3.connection.asyncio.open_connection",
            side_effect=socket.gaierror(-2, "Name or service not known"),
        ):
            with pytest.raises(ConnectError) as exc_info:
                await connection.connect()

        assert exc_info.value.kind == ConnectErrorKind.DNS_FAILURE

    async def test_greeting_read_timeout(self):
        """Test a server that never greets fails with TIMEOUT once the read timeout passes"""
        server = FakePop3Server()
        server.gate = asyncio.Event()
        await server.start()
        try:
            connection = Pop3Connection(_config(server), read_timeout=0.1)

            with pytest.raises(ConnectError) as exc_info:
                await connection.connect()

            assert exc_info.value.kind == ConnectErrorKind.TIMEOUT
            assert isinstance(exc_info.value.__cause__, NetworkTimeoutError)
            assert not connection.is_connected
        finally:
            server.gate.set()
            await server.stop()

    async def test_password_not_logged(self, pop3_server, package_log):
        """Test the PASS argument never reaches the log"""
        async with Pop3Connection(_config(pop3_server)):
            pass

        messages = [record.getMessage() for record in package_log.records]
        assert any(message.startswith("C: PASS ") for message in messages)
        assert all("secret" not in message for message in messages)


class TestDisconnect:
    """Tests for QUIT and socket release"""

    async def test_disconnect_sends_quit_and_closes(self, pop3_server):
        """Test disconnect says QUIT and releases the socket"""
        connection = await Pop3Connection(_config(pop3_server)).connect()
        await connection.disconnect()

        assert pop3_server.sent("QUIT") == ["QUIT"]
        assert not connection.is_connected
        assert await pop3_server.wait_for_closed(1)

    async def test_disconnect_is_idempotent(self, pop3_server):
        """Test a second disconnect is a no-op"""
        connection = await Pop3Connection(_config(pop3_server)).connect()
        await connection.disconnect()
        await connection.disconnect()

        assert pop3_server.sent("QUIT") == ["QUIT"]

    async def test_disconnect_swallows_quit_errors(self, pop3_server):
        """Test a dead connection still disconnects cleanly"""
        pop3_server.drop_on_retr.add(1)
        connection = await Pop3Connection(_config(pop3_server)).connect()

        assert await connection.command("RETR", 1) == b""
        await connection.disconnect()

        assert not connection.is_connected
        assert connection.get_stats().commands_sent >= 3

    async def test_stats_recorded(self, pop3_server):
        """Test commands and lines are counted"""
        async with Pop3Connection(_config(pop3_server)) as connection:
            stats = connection.get_stats()
            assert stats.commands_sent == 2
            assert stats.lines_read == 3
            assert stats.bytes_received > 0
