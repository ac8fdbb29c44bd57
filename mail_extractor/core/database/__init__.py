"""SQLite persistence for settings, imported emails and the import log."""

from .store import RecordStore

__all__ = ["RecordStore"]
