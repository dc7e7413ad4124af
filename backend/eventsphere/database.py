"""Database configuration and session management."""
import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from eventsphere.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Dialects whose default storage engines honour multi-statement transactions
TRANSACTIONAL_DIALECTS = frozenset({"postgresql", "sqlite", "oracle", "mssql"})


def _engine_options(url: str) -> dict:
    """Pool and driver options for the configured backend."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 20,
        "max_overflow": 50,
        "pool_pre_ping": True,
        # Disable prepared statement caching for pgbouncer compatibility
        "connect_args": {
            "server_settings": {
                "jit": "off",
            },
            "prepared_statement_cache_size": 0,
        },
    }


engine = create_async_engine(
    settings.async_database_url,
    echo=False,  # Disable SQL query logging (too verbose)
    **_engine_options(settings.async_database_url),
)

# Create session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for models
Base = declarative_base()


async def get_db() -> AsyncSession:
    """Dependency for getting database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def detect_transaction_support(bind: AsyncEngine, mode: Optional[str] = None) -> bool:
    """
    Report whether the store can run multi-statement transactions.

    Args:
        bind: Engine the coordinator will open sessions against
        mode: "enabled", "disabled" or "auto" (defaults to DB_TRANSACTION_MODE)

    Returns:
        True when writes issued inside one session can be committed or
        rolled back together.
    """
    mode = (mode or settings.DB_TRANSACTION_MODE).lower()
    if mode == "enabled":
        return True
    if mode == "disabled":
        return False

    dialect_name = bind.dialect.name
    if dialect_name == "mysql":
        # MyISAM tables silently ignore BEGIN/ROLLBACK
        async with bind.connect() as conn:
            result = await conn.execute(text(
                "SELECT ENGINE FROM information_schema.TABLES "
                "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = 'events'"
            ))
            storage_engine = result.scalar_one_or_none()
        supported = (storage_engine or "InnoDB").lower() == "innodb"
    else:
        supported = dialect_name in TRANSACTIONAL_DIALECTS

    logger.debug("Transaction support for dialect %s: %s", dialect_name, supported)
    return supported
