"""Email field sanitisation."""

import re

from email_validator import EmailNotValidError, validate_email

from mail_extractor.utils.logging import get_logger

logger = get_logger(__name__)

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
LINE_BREAKS = re.compile(r"\s*[\r\n]+\s*")


class EmailSanitizer:
    """Clean parsed header and body values before they are stored"""

    @staticmethod
    def strip_control_chars(text: str) -> str:
        """Remove control characters, keeping tab, newline and carriage return"""
        if not text:
            return ""
        return CONTROL_CHARS.sub("", text)

    @staticmethod
    def sanitize_text(text: str) -> str:
        return EmailSanitizer.strip_control_chars(text).strip()

    @staticmethod
    def sanitize_subject(subject: str) -> str:
        """Single-line subject without control characters"""
        cleaned = EmailSanitizer.strip_control_chars(subject)
        return LINE_BREAKS.sub(" ", cleaned).strip()

    @staticmethod
    def sanitize_body(body: str) -> str:
        return EmailSanitizer.strip_control_chars(body)

    @staticmethod
    def sanitize_address(address: str) -> str:
        """Normalised address, or "" when it is not a syntactically valid one"""
        cleaned = EmailSanitizer.sanitize_text(address)
        if not cleaned:
            return ""

        try:
            return validate_email(cleaned, check_deliverability=False).normalized
        except EmailNotValidError as e:
            logger.debug(f"Dropping invalid address {cleaned!r}: {e}")
            return ""
