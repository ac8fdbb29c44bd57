"""Email parsing - raw RETR content into a MailMessage."""

import re
from datetime import datetime, timezone
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from email.utils import parsedate_to_datetime
from typing import Dict, List, Optional, Tuple

from mail_extractor.core.models.email import MailMessage
from mail_extractor.core.validation.email import EmailSanitizer
from mail_extractor.utils.logging import get_logger

logger = get_logger(__name__)

ANGLE_ADDRESS = re.compile(r"<([^>]+)>")


class EmailParser:
    """Parse raw message text into structured fields.

    Parsing never fails: malformed input yields empty fields and a missing
    or unreadable date falls back to the current time.
    """

    @staticmethod
    def parse(
        raw: bytes | str, uid: str = "", now: Optional[datetime] = None
    ) -> MailMessage:
        """Parse raw message content.

        Args:
            raw: Message content as fetched, headers then body
            uid: Mailbox unique id of the message
            now: Fallback timestamp for messages without a usable date

        Returns:
            MailMessage with sanitised fields and an aware UTC date
        """
        lines = EmailParser._split_lines(raw)
        headers, body_lines = EmailParser._split_headers(lines)

        sender = EmailParser.extract_address(headers.get("from", ""))
        recipient = EmailParser.extract_address(headers.get("to", ""))
        subject = EmailParser.decode_subject(headers.get("subject", ""))
        date = EmailParser.parse_date(headers.get("date", ""), now=now)

        return MailMessage(
            uid=uid,
            sender=EmailSanitizer.sanitize_address(sender),
            recipient=EmailSanitizer.sanitize_address(recipient),
            subject=EmailSanitizer.sanitize_subject(subject),
            body=EmailSanitizer.sanitize_body("\n".join(body_lines)),
            date=date,
            attachments_count=0,
        )

    @staticmethod
    def _split_lines(raw: bytes | str) -> List[str]:
        if isinstance(raw, (bytes, bytearray)):
            text = bytes(raw).decode("utf-8", errors="replace")
        else:
            text = raw or ""

        lines = [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]
        if lines and lines[-1] == "":
            lines.pop()
        return lines

    @staticmethod
    def _split_headers(lines: List[str]) -> Tuple[Dict[str, str], List[str]]:
        """Headers up to the first blank line, the rest is body."""
        headers: Dict[str, str] = {}
        last_key: Optional[str] = None

        for position, line in enumerate(lines):
            if not line.strip():
                return headers, lines[position + 1:]

            # folded continuation of the previous header
            if line[0] in " \t":
                if last_key is not None:
                    headers[last_key] = f"{headers[last_key]} {line.strip()}".strip()
                continue

            key, sep, value = line.partition(":")
            if not sep:
                last_key = None
                continue

            last_key = key.strip().lower()
            headers[last_key] = value.strip()

        return headers, []

    @staticmethod
    def extract_address(value: str) -> str:
        """Contents of the first <...> pair, else the value unchanged."""
        match = ANGLE_ADDRESS.search(value)
        if match:
            return match.group(1)
        return value

    @staticmethod
    def decode_subject(value: str) -> str:
        """Decode RFC 2047 encoded words, falling back to the raw value."""
        if not value:
            return ""

        try:
            return str(make_header(decode_header(value)))
        except (HeaderParseError, UnicodeDecodeError, LookupError, ValueError) as e:
            logger.debug(f"Could not decode subject {value!r}: {e}")
            return value

    @staticmethod
    def parse_date(value: str, now: Optional[datetime] = None) -> datetime:
        """Date header as aware UTC, or ``now`` when it cannot be read."""
        value = (value or "").strip()
        parsed: Optional[datetime] = None

        if value:
            try:
                parsed = parsedate_to_datetime(value)
            except (TypeError, ValueError, IndexError, OverflowError):
                try:
                    parsed = datetime.fromisoformat(value)
                except ValueError:
                    logger.debug(f"Unparseable date header: {value!r}")

        if parsed is not None:
            try:
                return EmailParser._to_utc(parsed)
            except OverflowError:
                logger.debug(f"Date header out of range: {value!r}")

        return EmailParser._to_utc(now or datetime.now(timezone.utc))

    @staticmethod
    def _to_utc(value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
