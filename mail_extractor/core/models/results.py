"""Outcome values returned by the sync operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ResultStatus(Enum):
    SUCCESS = "success"
    NO_MESSAGES = "no_messages"
    NOT_CONFIGURED = "not_configured"
    CONNECT_FAILED = "connect_failed"
    BUSY = "busy"
    INTERRUPTED = "interrupted"
    STORE_FAILED = "store_failed"

    @property
    def is_success(self) -> bool:
        return self in (ResultStatus.SUCCESS, ResultStatus.NO_MESSAGES)


@dataclass(frozen=True)
class ImportResult:
    """Summary of one ``import_now`` run."""

    status: ResultStatus
    message: str
    imported_count: int = 0
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.status.is_success


@dataclass(frozen=True)
class ConnectionTestResult:
    """Summary of one ``test_connection`` run."""

    status: ResultStatus
    message: str
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.status.is_success
