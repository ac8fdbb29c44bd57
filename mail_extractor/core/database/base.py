"""SQLAlchemy metadata and async engine construction for the mail database."""

from pathlib import Path
from typing import Optional

from sqlalchemy import MetaData, event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool

from mail_extractor.core.database.config import PoolConfig, get_config
from mail_extractor.utils.logging import get_logger

logger = get_logger(__name__)

metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "pk": "pk_%(table_name)s",
    }
)

SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA temp_store=MEMORY",
)


def sqlite_url(db_path: Path) -> str:
    return f"sqlite+aiosqlite:///{db_path}"


def create_engine(db_path: Path, config: Optional[PoolConfig] = None) -> AsyncEngine:
    """Create the async engine for ``db_path``, creating its directory.

    Args:
        db_path: SQLite database file
        config: Pool tuning, the environment-derived default when omitted

    Returns:
        Engine with WAL journaling enabled on every pooled connection
    """
    config = config or get_config()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_async_engine(
        sqlite_url(db_path),
        echo=config.echo,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        pool_recycle=config.pool_recycle,
        pool_pre_ping=True,
        connect_args={"timeout": config.query_timeout, "check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def apply_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        for pragma in SQLITE_PRAGMAS:
            cursor.execute(pragma)
        cursor.close()

    logger.debug(f"Mail database engine ready: {db_path} (pool_size={config.pool_size})")
    return engine


async def dispose_engine(engine: AsyncEngine) -> None:
    await engine.dispose()
    logger.debug("Mail database engine disposed")
