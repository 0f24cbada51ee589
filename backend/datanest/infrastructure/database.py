"""Database Session Manager — one AsyncSession per request, driver errors mapped to domain errors.

Invariants:
    - A session that leaves with an exception is rolled back before it is closed
    - Unique-constraint races (duplicate email, reused payment ref) surface as 409 Conflict,
      every other SQLAlchemy failure as DatabaseError (503)
    - Domain errors raised by handlers pass through untouched

Design Decisions:
    - db_manager is a module singleton created by the FastAPI lifespan, never at import
    - expire_on_commit=False: responses are built from rows after the single commit
    - SQLite URLs skip pool sizing (aiosqlite runs on a static pool in tests)
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from datanest.core.errors import ConflictError, DatabaseError, DatanestError

logger = logging.getLogger(__name__)


def translate_db_error(e: SQLAlchemyError) -> DatanestError:
    """Map a driver/ORM failure onto the error hierarchy."""
    if isinstance(e, IntegrityError):
        return ConflictError(
            "The record conflicts with an existing one", "INTEGRITY_CONFLICT",
        )
    if isinstance(e, OperationalError):
        return DatabaseError("Connection or operational error", "execute")
    if isinstance(e, DBAPIError):
        return DatabaseError("Database driver error", "query")
    return DatabaseError("Database operation failed", "unknown")


class DatabaseSessionManager:
    """Engine + session factory for the marketplace database."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        engine_kwargs: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size, max_overflow=max_overflow, pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            mapped = translate_db_error(e)
            logger.error(
                f"{type(e).__name__}: {e}", extra={"error_code": mapped.code},
            )
            raise mapped from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """SELECT 1 through a fresh session (readiness check)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


# Set by init_db() from the FastAPI lifespan
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs):
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: the request's session."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
