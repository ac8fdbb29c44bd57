"""Database utilities."""

from datetime import datetime, timezone

from mail_extractor.core.models.email import MailMessage


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_db_datetime(value: datetime) -> datetime:
    """Aware datetime to the naive UTC form stored in the database."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_db_datetime(value: datetime) -> datetime:
    """Stored naive UTC datetime back to an aware one."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def row_to_message(row) -> MailMessage:
    """Convert an ``emails`` row to a MailMessage."""
    return MailMessage(
        uid=row.email_uid,
        sender=row.email_from or "",
        recipient=row.email_to or "",
        subject=row.email_subject or "",
        body=row.email_body or "",
        date=from_db_datetime(row.email_date),
        attachments_count=row.attachments_count or 0,
    )


def message_to_row(message: MailMessage, imported_at: datetime) -> dict:
    """Column values for an ``emails`` upsert."""
    return {
        "email_uid": message.uid,
        "email_from": message.sender,
        "email_to": message.recipient,
        "email_subject": message.subject,
        "email_body": message.body,
        "email_date": to_db_datetime(message.date),
        "imported_date": to_db_datetime(imported_at),
        "attachments_count": message.attachments_count,
    }
