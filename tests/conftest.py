"""
Shared test fixtures and configuration for pytest
"""
import logging
import os
import tempfile

# Keep config, logs and the default database out of the real home directory.
# Must run before any mail_extractor import computes its paths.
os.environ["MAIL_EXTRACTOR_HOME"] = tempfile.mkdtemp(prefix="mail_extractor_tests_")

import pytest

from mail_extractor.core.database.store import RecordStore
from mail_extractor.core.sync.locks import SessionLockRegistry
from mail_extractor.core.sync.orchestrator import SyncOrchestrator
from mail_extractor.utils.config_manager import ConfigManager
from mail_extractor.utils.logging import ROOT_LOGGER_NAME

from .test_helpers import FakePop3Server, build_raw_message


@pytest.fixture
async def store(tmp_path):
    """Initialised record store on a temporary database"""
    record_store = RecordStore(tmp_path / "test_emails.db")
    await record_store.initialize()
    yield record_store
    await record_store.close()


@pytest.fixture
async def pop3_server():
    """Running fake POP3 server with three messages"""
    server = FakePop3Server(
        messages=[
            ("uid-a", build_raw_message(subject="First")),
            ("uid-b", build_raw_message(subject="Second")),
            ("uid-c", build_raw_message(subject="Third")),
        ]
    )
    await server.start()
    yield server
    await server.stop()


@pytest.fixture
async def configured_store(store, pop3_server):
    """Store whose settings point at the fake POP3 server"""
    for key, value in pop3_server.settings.items():
        await store.save_setting(key, value)
    return store


@pytest.fixture
def orchestrator(configured_store):
    """Orchestrator with its own lock registry and a short read timeout"""
    return SyncOrchestrator(
        configured_store, locks=SessionLockRegistry(), connect_timeout=2, read_timeout=2
    )


@pytest.fixture
def config_manager(tmp_path):
    """Fresh ConfigManager backed by a temporary file"""
    ConfigManager.reset_instance()
    manager = ConfigManager(tmp_path / "config.json")
    yield manager
    ConfigManager.reset_instance()


@pytest.fixture
def package_log(caplog):
    """caplog wired to the package logger, which does not propagate to root"""
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    previous_level = package_logger.level
    package_logger.addHandler(caplog.handler)
    package_logger.setLevel(logging.DEBUG)
    caplog.handler.setLevel(logging.DEBUG)
    yield caplog
    package_logger.removeHandler(caplog.handler)
    package_logger.setLevel(previous_level)
