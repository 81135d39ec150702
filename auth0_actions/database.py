"""Database configuration and connection management."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy import MetaData, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from auth0_actions.config import settings

logger = structlog.get_logger()


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    metadata = MetaData(
        naming_convention={
            "ix": "ix_%(column_0_label)s",
            "uq": "uq_%(table_name)s_%(column_0_name)s",
            "ck": "ck_%(table_name)s_%(constraint_name)s",
            "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
            "pk": "pk_%(table_name)s",
        }
    )


class DatabaseManager:
    """Database connection manager."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.database_url
        self.engine: Optional[AsyncEngine] = None
        self.async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    async def initialize(self) -> None:
        """Initialize the database connection and create missing tables."""
        logger.info("Initializing database connection...")

        try:
            engine_kwargs = {"echo": settings.database_echo, "pool_pre_ping": True}
            if not self.database_url.startswith("sqlite"):
                engine_kwargs["pool_recycle"] = 3600  # Recycle connections every hour

            self.engine = create_async_engine(self.database_url, **engine_kwargs)

            self.async_session_maker = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

            await self.create_all()

            logger.info("Database connection established")

        except Exception as e:
            logger.error("Failed to initialize database", error=str(e))
            raise

    async def create_all(self) -> None:
        """Create every table registered on ``Base``."""
        if not self.engine:
            raise RuntimeError("Database not initialized")

        # Import models so they register with the metadata
        from auth0_actions.credentials import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Close the database connection."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.async_session_maker = None
            logger.info("Database connection closed")

    async def health_check(self) -> dict:
        """Perform a health check on the database."""
        health_status = {"status": "unknown", "error": None}

        try:
            if self.engine:
                async with self.engine.begin() as conn:
                    await conn.execute(text("SELECT 1"))
                health_status["status"] = "healthy"
            else:
                health_status["status"] = "disabled"
        except Exception as e:
            health_status["status"] = "unhealthy"
            health_status["error"] = str(e)

        return health_status

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get an async database session."""
        if not self.async_session_maker:
            raise RuntimeError("Database not initialized")

        async with self.async_session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise


# Global database manager instance
db_manager = DatabaseManager()
