"""Email domain models"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RawMessage:
    """One message as retrieved from the mailbox, before parsing.

    ``content`` holds the RETR payload lines verbatim (no dot-unstuffing),
    each still terminated by CRLF.
    """

    index: int
    uid: str
    content: bytes


@dataclass(frozen=True)
class MailMessage:
    """A parsed message, keyed by its mailbox UID.

    Storing a message whose uid already exists replaces the stored record
    entirely.
    """

    uid: str
    sender: str
    recipient: str
    subject: str
    body: str
    date: datetime
    attachments_count: int = 0

    def to_dict(self) -> dict:
        return {
            "uid": self.uid,
            "sender": self.sender,
            "recipient": self.recipient,
            "subject": self.subject,
            "body": self.body,
            "date": self.date.isoformat(),
            "attachments_count": self.attachments_count,
        }
