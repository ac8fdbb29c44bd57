"""Mailbox connection settings."""

from dataclasses import dataclass, field
from typing import Any, Mapping

from mail_extractor.core.validation.settings import parse_bool, parse_int
from mail_extractor.utils.errors import InvalidConfigError, MissingConfigError

DEFAULT_POP3_PORT = 995


@dataclass(frozen=True)
class ConnectionConfig:
    """Where and how to log in to the POP3 mailbox."""

    server: str
    username: str
    port: int = DEFAULT_POP3_PORT
    password: str = field(default="", repr=False)
    app_password: str = field(default="", repr=False)
    use_ssl: bool = True

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ConnectionConfig":
        """Build a config from stored settings or command line arguments.

        Accepts both the stored key names (``pop3_server``, ``pop3_port``)
        and the short forms (``server``, ``port``).
        """
        server = data.get("pop3_server", data.get("server")) or ""
        port = data.get("pop3_port", data.get("port"))

        return cls(
            server=str(server).strip(),
            username=str(data.get("username") or "").strip(),
            port=parse_int(port, DEFAULT_POP3_PORT),
            password=str(data.get("password") or ""),
            app_password=str(data.get("app_password") or ""),
            use_ssl=parse_bool(data.get("use_ssl"), default=True),
        )

    @property
    def effective_password(self) -> str:
        """App password when one is set, otherwise the regular password."""
        return self.app_password or self.password

    @property
    def is_configured(self) -> bool:
        return bool(self.server and self.username and self.effective_password)

    @property
    def lock_key(self) -> tuple[str, int, str]:
        return (self.server.lower(), self.port, self.username)

    def validate(self) -> None:
        """Raise a configuration error naming the first missing piece."""
        if not self.server or not self.username:
            raise MissingConfigError("Server and username are required")
        if not self.effective_password:
            raise MissingConfigError("Password or app password is required")
        if not 0 < self.port < 65536:
            raise InvalidConfigError(
                f"Invalid POP3 port: {self.port}", details={"port": self.port}
            )
