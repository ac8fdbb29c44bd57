"""
Tests for SyncOrchestrator

Tests cover:
- Import outcomes: empty mailbox, full batch, skipped messages
- Connect failures and interrupted batches
- Session lock contention
- Connection tests
"""
import asyncio

import pytest

from mail_extractor.core.database.store import RecordStore
from mail_extractor.core.models.connection import ConnectionConfig
from mail_extractor.core.models.results import ResultStatus
from mail_extractor.core.sync.locks import SessionLockRegistry
from mail_extractor.core.sync.orchestrator import SyncOrchestrator, format_import_summary
from mail_extractor.utils.errors import (
    ConnectError,
    ConnectErrorKind,
    DatabaseError,
    MissingConfigError,
)

from .test_helpers import FakePop3Server, build_raw_message


async def _configure(store, server: FakePop3Server) -> None:
    for key, value in server.settings.items():
        await store.save_setting(key, value)


class TestImportSummary:
    def test_singular(self):
        assert format_import_summary(1) == "1 email imported successfully."

    def test_plural(self):
        assert format_import_summary(0) == "0 emails imported successfully."
        assert format_import_summary(3) == "3 emails imported successfully."


class TestImportNow:
    """Tests for the import workflow"""

    async def test_empty_mailbox(self, store):
        server = await FakePop3Server().start()
        try:
            await _configure(store, server)
            orchestrator = SyncOrchestrator(store, locks=SessionLockRegistry())

            result = await orchestrator.import_now()
        finally:
            await server.stop()

        assert result.status == ResultStatus.NO_MESSAGES
        assert result.success
        assert result.message == "No new emails to import."
        assert result.imported_count == 0
        assert await store.get_recent_logs() == []
        assert server.sent("QUIT") == ["QUIT"]

    async def test_imports_every_message(self, orchestrator, configured_store, pop3_server):
        result = await orchestrator.import_now()

        assert result.status == ResultStatus.SUCCESS
        assert result.imported_count == 3
        assert result.message == "3 emails imported successfully."
        assert await configured_store.get_emails_count() == 3

        stored = await configured_store.get_email("uid-b")
        assert stored.subject == "Second"
        assert stored.sender == "alice@acme.io"

        entries = await configured_store.get_recent_logs()
        assert [(e["log_type"], e["log_message"]) for e in entries] == [
            ("import", "3 emails imported successfully.")
        ]
        assert pop3_server.sent("QUIT") == ["QUIT"]

    async def test_reimport_does_not_duplicate(self, orchestrator, configured_store):
        await orchestrator.import_now()
        result = await orchestrator.import_now()

        assert result.imported_count == 3
        assert await configured_store.get_emails_count() == 3

    async def test_message_without_uid_is_skipped(self, store):
        server = FakePop3Server(
            messages=[
                ("uid-1", build_raw_message(subject="Kept")),
                ("uid-2", build_raw_message(subject="Lost")),
            ]
        )
        server.uidl_failures.add(2)
        await server.start()
        try:
            await _configure(store, server)
            orchestrator = SyncOrchestrator(store, locks=SessionLockRegistry())

            result = await orchestrator.import_now()
        finally:
            await server.stop()

        assert result.status == ResultStatus.SUCCESS
        assert result.message == "1 email imported successfully."
        assert await store.get_email("uid-1") is not None
        assert await store.get_email("uid-2") is None
        assert server.sent("RETR") == ["RETR 1"]

    async def test_refused_retrieval_is_skipped(self, orchestrator, configured_store, pop3_server):
        pop3_server.retr_failures.add(1)

        result = await orchestrator.import_now()

        assert result.imported_count == 2
        assert await configured_store.get_email("uid-a") is None

    async def test_not_configured(self, store):
        orchestrator = SyncOrchestrator(store, locks=SessionLockRegistry())

        result = await orchestrator.import_now()

        assert result.status == ResultStatus.NOT_CONFIGURED
        assert not result.success
        assert result.message == "Please configure POP3 settings first."
        assert isinstance(result.error, MissingConfigError)
        assert await store.get_recent_logs() == []

    async def test_connect_failure_is_logged(self, orchestrator, configured_store, pop3_server):
        await configured_store.save_setting("password", "wrong")

        result = await orchestrator.import_now()

        assert result.status == ResultStatus.CONNECT_FAILED
        assert result.message == "Authentication failed. Check password/app password."
        assert isinstance(result.error, ConnectError)

        entries = await configured_store.get_recent_logs()
        assert entries[0]["log_type"] == "error"
        assert entries[0]["log_message"] == result.message
        assert await configured_store.get_emails_count() == 0

    async def test_hang_up_mid_batch_skips_remaining(
        self, orchestrator, configured_store, pop3_server
    ):
        pop3_server.drop_on_retr.add(2)

        result = await orchestrator.import_now()

        assert result.status == ResultStatus.SUCCESS
        assert result.imported_count == 1
        assert result.message == "1 email imported successfully."
        assert await configured_store.get_email("uid-a") is not None
        assert await configured_store.get_emails_count() == 1

        entries = await configured_store.get_recent_logs()
        assert entries[0]["log_type"] == "import"
        assert entries[0]["log_message"] == result.message
        assert await pop3_server.wait_for_closed(1)

    async def test_hang_up_after_stat_means_no_messages(
        self, orchestrator, configured_store, pop3_server
    ):
        pop3_server.hang_up_on.add("STAT")

        result = await orchestrator.import_now()

        assert result.status == ResultStatus.NO_MESSAGES
        assert result.success
        assert result.message == "No new emails to import."
        assert await configured_store.get_emails_count() == 0
        assert await configured_store.get_recent_logs() == []

    async def test_hang_up_after_user_is_user_rejected(
        self, orchestrator, configured_store, pop3_server
    ):
        pop3_server.hang_up_on.add("USER")

        result = await orchestrator.import_now()

        assert result.status == ResultStatus.CONNECT_FAILED
        assert result.error.kind == ConnectErrorKind.USER_REJECTED
        assert result.message == "Username not accepted"
        assert await pop3_server.wait_for_closed(1)

    async def test_stalled_server_interrupts_batch(self, configured_store, pop3_server):
        pop3_server.stall_on_retr.add(3)
        orchestrator = SyncOrchestrator(
            configured_store, locks=SessionLockRegistry(), connect_timeout=2, read_timeout=0.2
        )

        result = await orchestrator.import_now()

        assert result.status == ResultStatus.INTERRUPTED
        assert result.imported_count == 2
        assert await configured_store.get_emails_count() == 2

    async def test_concurrent_import_reports_busy(self, store):
        server = FakePop3Server(messages=[("uid-1", build_raw_message())])
        server.gate = asyncio.Event()
        await server.start()
        try:
            await _configure(store, server)
            orchestrator = SyncOrchestrator(
                store, locks=SessionLockRegistry(), connect_timeout=2, read_timeout=2
            )

            first = asyncio.create_task(orchestrator.import_now())
            await asyncio.wait_for(server.connected.wait(), timeout=2)

            second = await orchestrator.import_now()
            server.gate.set()
            first_result = await first
        finally:
            server.gate.set()
            await server.stop()

        assert second.status == ResultStatus.BUSY
        assert second.message == "An import is already running for this mailbox."
        assert server.connections == 1
        assert first_result.status == ResultStatus.SUCCESS
        assert [e["log_type"] for e in await store.get_recent_logs()] == ["import"]

    async def test_lock_released_after_failure(self, orchestrator, configured_store):
        await configured_store.save_setting("password", "wrong")
        await orchestrator.import_now()

        config = await orchestrator.load_config()
        assert not orchestrator.locks.is_locked(config.lock_key)


class TestConnectionTest:
    """Tests for test_connection"""

    async def test_success(self, orchestrator, pop3_server):
        result = await orchestrator.test_connection()

        assert result.status == ResultStatus.SUCCESS
        assert result.message == "Connection successful!"
        assert pop3_server.sent("STAT") == []
        assert pop3_server.sent("QUIT") == ["QUIT"]

    async def test_not_configured(self, store):
        orchestrator = SyncOrchestrator(store, locks=SessionLockRegistry())

        result = await orchestrator.test_connection()

        assert result.status == ResultStatus.NOT_CONFIGURED
        assert result.message == "Server and username are required"

    async def test_explicit_config(self, orchestrator, pop3_server):
        config = ConnectionConfig.from_mapping({**pop3_server.settings, "password": "nope"})

        result = await orchestrator.test_connection(config)

        assert result.status == ResultStatus.CONNECT_FAILED
        assert result.error.kind == ConnectErrorKind.AUTH_FAILED

    async def test_failure_not_written_to_import_log(self, orchestrator, configured_store):
        await configured_store.save_setting("username", "nobody")

        result = await orchestrator.test_connection()

        assert result.status == ResultStatus.CONNECT_FAILED
        assert result.message == "Username not accepted"
        assert await configured_store.get_recent_logs() == []


class TestUnreadableStore:
    """Tests for a database that cannot be opened"""

    @pytest.fixture
    async def broken_store(self, tmp_path):
        # A directory where the database file should be
        record_store = RecordStore(tmp_path)
        yield record_store
        await record_store.close()

    async def test_import_reports_store_failure(self, broken_store):
        orchestrator = SyncOrchestrator(broken_store, locks=SessionLockRegistry())

        result = await orchestrator.import_now()

        assert result.status == ResultStatus.STORE_FAILED
        assert not result.success
        assert isinstance(result.error, DatabaseError)

    async def test_connection_test_reports_store_failure(self, broken_store):
        orchestrator = SyncOrchestrator(broken_store, locks=SessionLockRegistry())

        result = await orchestrator.test_connection()

        assert result.status == ResultStatus.STORE_FAILED
        assert isinstance(result.error, DatabaseError)
