"""SQLAlchemy table definitions with proper types and constraints."""

from sqlalchemy import Column, DateTime, Index, Integer, String, Table, Text

from mail_extractor.core.database.base import metadata

# All DateTime columns hold naive UTC values.

emails = Table(
    "emails",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email_uid", String(255), unique=True, nullable=False),
    Column("email_from", String(255), nullable=False, default="", server_default=""),
    Column("email_to", String(255), nullable=False, default="", server_default=""),
    Column("email_subject", Text, nullable=False, default="", server_default=""),
    Column("email_body", Text, nullable=False, default="", server_default=""),
    Column("email_date", DateTime, nullable=False),
    Column("imported_date", DateTime, nullable=False),
    Column("attachments_count", Integer, nullable=False, default=0, server_default="0"),
    Index("ix_emails_email_date", "email_date"),
)

settings = Table(
    "settings",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("setting_key", String(191), unique=True, nullable=False),
    Column("setting_value", Text, nullable=False, default="", server_default=""),
)

logs = Table(
    "logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("log_type", String(50), nullable=False),
    Column("log_message", Text, nullable=False),
    Column("log_date", DateTime, nullable=False),
    Index("ix_logs_log_date", "log_date"),
)

DEFAULT_SETTINGS = {
    "pop3_server": "",
    "pop3_port": "995",
    "username": "",
    "email_address": "",
    "password": "",
    "app_password": "",
    "use_ssl": "1",
    "import_frequency": "60",
    "auto_cleanup": "0",
    "cleanup_days": "30",
}
