"""Import workflow: connect, enumerate, fetch, parse, store, summarise."""

from dataclasses import dataclass
from typing import Optional

from mail_extractor.core.database.store import RecordStore
from mail_extractor.core.email.parser import EmailParser
from mail_extractor.core.models.connection import ConnectionConfig
from mail_extractor.core.models.results import (
    ConnectionTestResult,
    ImportResult,
    ResultStatus,
)
from mail_extractor.core.pop3.client import Pop3Client, pop3_session
from mail_extractor.core.pop3.connection import Pop3Connection
from mail_extractor.core.pop3.constants import Timeouts
from mail_extractor.utils.errors import (
    ConfigurationError,
    ConnectError,
    DatabaseError,
    FetchError,
    MissingConfigError,
    NetworkTimeoutError,
    SessionBusyError,
)
from mail_extractor.utils.logging import get_logger, log_event

from .locks import SessionLockRegistry, session_locks

logger = get_logger(__name__)

NO_NEW_EMAILS = "No new emails to import."
CONNECTION_OK = "Connection successful!"


def format_import_summary(count: int) -> str:
    if count == 1:
        return "1 email imported successfully."
    return f"{count} emails imported successfully."


@dataclass
class SyncSession:
    """State of one import run. ``client`` is only set while connected."""

    config: ConnectionConfig
    client: Optional[Pop3Client] = None
    message_count: int = 0
    imported_count: int = 0
    skipped_count: int = 0


class SyncOrchestrator:
    """Runs imports and connection tests against the configured mailbox.

    Safe to call from a manual trigger and from the scheduler at the same
    time: only one import per mailbox runs, the other reports ``BUSY``.
    Outcomes are returned as result values; no exception escapes an
    import or a connection test.
    """

    def __init__(
        self,
        store: RecordStore,
        locks: Optional[SessionLockRegistry] = None,
        connect_timeout: float = Timeouts.POP3_CONNECT,
        read_timeout: Optional[float] = None,
    ):
        self.store = store
        self.locks = locks or session_locks
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout

    async def load_config(self) -> ConnectionConfig:
        return ConnectionConfig.from_mapping(await self.store.get_settings())

    def _connection(self, config: ConnectionConfig) -> Pop3Connection:
        return Pop3Connection(
            config,
            connect_timeout=self.connect_timeout,
            read_timeout=self.read_timeout,
        )

    ## Connection test

    async def test_connection(
        self, config: Optional[ConnectionConfig] = None
    ) -> ConnectionTestResult:
        """Log in and out again without touching any message.

        Args:
            config: Settings to try, defaults to the stored ones
        """
        if config is None:
            try:
                config = await self.load_config()
            except DatabaseError as e:
                logger.error(f"Could not read mailbox settings: {e.message}")
                return ConnectionTestResult(ResultStatus.STORE_FAILED, e.message, error=e)

        try:
            config.validate()
        except ConfigurationError as e:
            return ConnectionTestResult(ResultStatus.NOT_CONFIGURED, e.message, error=e)

        try:
            async with self._connection(config):
                pass
        except ConnectError as e:
            logger.warning(f"Connection test failed: {e.message}")
            return ConnectionTestResult(ResultStatus.CONNECT_FAILED, e.message, error=e)

        log_event("connection_test", CONNECTION_OK, server=config.server)
        return ConnectionTestResult(ResultStatus.SUCCESS, CONNECTION_OK)

    ## Import

    async def import_now(self) -> ImportResult:
        """Import every message currently in the mailbox.

        Messages already imported are overwritten in place (keyed by uid).
        """
        try:
            config = await self.load_config()
        except DatabaseError as e:
            logger.error(f"Could not read mailbox settings: {e.message}")
            return ImportResult(ResultStatus.STORE_FAILED, e.message, error=e)

        try:
            config.validate()
        except ConfigurationError as e:
            logger.info(f"Import skipped: {e.message}")
            return ImportResult(
                ResultStatus.NOT_CONFIGURED, MissingConfigError.user_message, error=e
            )

        try:
            with self.locks.session(config.lock_key):
                return await self._run_import(config)
        except SessionBusyError as e:
            logger.info("Import skipped, another session holds the mailbox")
            return ImportResult(ResultStatus.BUSY, e.message, error=e)

    async def _run_import(self, config: ConnectionConfig) -> ImportResult:
        session = SyncSession(config)

        try:
            async with pop3_session(config, connection=self._connection(config)) as client:
                session.client = client
                session.message_count = await client.stat_count()
                if session.message_count == 0:
                    logger.info("Mailbox is empty")
                    return ImportResult(ResultStatus.NO_MESSAGES, NO_NEW_EMAILS)

                logger.info(
                    f"Importing {session.message_count} message(s) from {config.server}"
                )
                await self._import_messages(session)

        except ConnectError as e:
            await self._record_log("error", e.message)
            return ImportResult(ResultStatus.CONNECT_FAILED, e.message, error=e)

        except NetworkTimeoutError as e:
            message = (
                f"Import interrupted after {session.imported_count} email(s): {e.message}"
            )
            logger.warning(message)
            await self._record_log("error", message)
            return ImportResult(
                ResultStatus.INTERRUPTED,
                message,
                imported_count=session.imported_count,
                error=e,
            )

        finally:
            session.client = None

        summary = format_import_summary(session.imported_count)
        await self._record_log("import", summary)
        log_event(
            "import_completed",
            summary,
            imported=session.imported_count,
            skipped=session.skipped_count,
            server=config.server,
        )
        return ImportResult(
            ResultStatus.SUCCESS, summary, imported_count=session.imported_count
        )

    async def _import_messages(self, session: SyncSession) -> None:
        """Fetch, parse and store messages 1..count.

        A message that cannot be fetched or stored is skipped, also when
        the server has hung up. A read timeout propagates and ends the
        batch; messages stored before that stay stored.
        """
        for index in range(1, session.message_count + 1):
            try:
                raw = await session.client.fetch_message(index)
            except FetchError as e:
                session.skipped_count += 1
                logger.debug(f"Skipping message {index}: {e.message}")
                continue

            message = EmailParser.parse(raw.content, uid=raw.uid)

            try:
                await self.store.save_email(message)
            except DatabaseError as e:
                session.skipped_count += 1
                logger.warning(f"Failed to store message {raw.uid}: {e.message}")
                continue

            session.imported_count += 1

        if session.skipped_count:
            logger.info(
                f"{session.skipped_count} of {session.message_count} message(s) were not imported"
            )

    async def _record_log(self, kind: str, message: str) -> None:
        try:
            await self.store.add_log(kind, message)
        except DatabaseError as e:
            logger.error(f"Could not write import log entry: {e.message}")
