"""
Database connection and session management
"""

import os
from typing import Any, Dict, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from mediamind.database.models import Base

logger = structlog.get_logger(__name__)


class DatabaseConfig:
    """Database configuration"""

    def __init__(self, database_url: Optional[str] = None):
        pghost = os.getenv("PGHOST", "localhost")
        pguser = os.getenv("PGUSER", "user")
        pgpassword = os.getenv("PGPASSWORD", "password")
        pgport = os.getenv("PGPORT", "5432")
        pgdatabase = os.getenv("PGDATABASE", "mediamind")

        self.database_url = database_url or os.getenv(
            "DATABASE_URL",
            f"postgresql+asyncpg://{pguser}:{pgpassword}@{pghost}:{pgport}/{pgdatabase}",
        )

        self.pool_size = int(os.getenv("DB_POOL_SIZE", "10"))
        self.max_overflow = int(os.getenv("DB_MAX_OVERFLOW", "20"))
        self.pool_timeout = int(os.getenv("DB_POOL_TIMEOUT", "30"))
        self.pool_recycle = int(os.getenv("DB_POOL_RECYCLE", "3600"))
        self.echo_sql = os.getenv("DB_ECHO_SQL", "false").lower() == "true"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def get_engine_kwargs(self) -> Dict[str, Any]:
        """Get SQLAlchemy engine configuration"""
        if self.is_sqlite:
            kwargs: Dict[str, Any] = {"echo": self.echo_sql}
            if ":memory:" in self.database_url:
                # One shared connection so the schema survives between sessions
                kwargs["poolclass"] = StaticPool
                kwargs["connect_args"] = {"check_same_thread": False}
            return kwargs

        kwargs = {
            "echo": self.echo_sql,
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "pool_recycle": self.pool_recycle,
            "pool_pre_ping": True,
        }
        if os.getenv("SERVERLESS", "false").lower() == "true":
            kwargs = {"echo": self.echo_sql, "poolclass": NullPool}
        return kwargs

    def redacted_url(self) -> str:
        if "@" not in self.database_url:
            return self.database_url
        scheme, rest = self.database_url.split("://", 1)
        creds, host = rest.rsplit("@", 1)
        user = creds.split(":", 1)[0]
        return f"{scheme}://{user}:****@{host}"


def create_engine(config: Optional[DatabaseConfig] = None) -> AsyncEngine:
    config = config or DatabaseConfig()
    logger.info("Creating database engine", url=config.redacted_url())
    return create_async_engine(config.database_url, **config.get_engine_kwargs())


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_database(engine: AsyncEngine) -> None:
    """Create tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")
