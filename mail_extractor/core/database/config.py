"""Pool and timeout tuning for the SQLite engine, read from DB_* variables."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from mail_extractor.core.validation.settings import parse_bool

ENV_PREFIX = "DB_"


def _env_number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class PoolConfig:
    """Engine tuning. The importer holds one connection at a time, so the
    defaults are small."""

    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: float = 30.0
    pool_recycle: int = 3600
    # sqlite3 busy timeout, seconds
    query_timeout: float = 30.0
    echo: bool = False

    def __post_init__(self):
        if self.pool_size < 1:
            raise ValueError("pool_size must be >= 1")
        if self.max_overflow < 0:
            raise ValueError("max_overflow must be >= 0")
        if self.pool_timeout <= 0:
            raise ValueError("pool_timeout must be > 0")
        if self.query_timeout <= 0:
            raise ValueError("query_timeout must be > 0")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "PoolConfig":
        """Build a config from ``DB_POOL_SIZE``, ``DB_MAX_OVERFLOW``,
        ``DB_POOL_TIMEOUT``, ``DB_POOL_RECYCLE``, ``DB_QUERY_TIMEOUT`` and
        ``DB_ECHO``. Unset variables keep the defaults.

        Raises:
            ValueError: A variable is set to something unusable
        """
        env = os.environ if env is None else env
        return cls(
            pool_size=_env_number(env, "POOL_SIZE", cls.pool_size, int),
            max_overflow=_env_number(env, "MAX_OVERFLOW", cls.max_overflow, int),
            pool_timeout=_env_number(env, "POOL_TIMEOUT", cls.pool_timeout, float),
            pool_recycle=_env_number(env, "POOL_RECYCLE", cls.pool_recycle, int),
            query_timeout=_env_number(env, "QUERY_TIMEOUT", cls.query_timeout, float),
            echo=parse_bool(env.get(ENV_PREFIX + "ECHO"), default=cls.echo),
        )


_config: Optional[PoolConfig] = None


def get_config() -> PoolConfig:
    """Process-wide pool config, read from the environment on first use."""
    global _config
    if _config is None:
        _config = PoolConfig.from_env()
    return _config


def reset_config() -> None:
    global _config
    _config = None
