"""POP3 constants and configuration values."""


class Pop3Response:
    """Status indicators at the start of a POP3 reply line."""

    OK = b"+OK"
    ERR = b"-ERR"


class Pop3Command:
    """POP3 commands used by the importer."""

    USER = "USER"
    PASS = "PASS"
    STAT = "STAT"
    UIDL = "UIDL"
    RETR = "RETR"
    QUIT = "QUIT"


class Timeouts:
    """Timeout values for POP3 operations (in seconds)."""

    POP3_CONNECT = 30.0  # TCP connect plus TLS handshake
    POP3_QUIT = 5.0  # QUIT round trip during disconnect


LINE_TERMINATOR = b"\r\n"
MESSAGE_TERMINATOR = b".\r\n"
