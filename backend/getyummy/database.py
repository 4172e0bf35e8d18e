"""
Get Yummy Backend - Database Session Management
===============================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       FastAPI session dependency.
How:   One session per request. The dependency commits when the handler
       returns and rolls back when it raises, so every multi-step operation
       (recipe reconciliation, reset-token replacement, login) is applied as
       a single transaction.
Who:   Route handlers via Depends(get_db_session); the CLI via
       async_session_factory.

Connection Pooling:
    pool_size / max_overflow / pool_pre_ping come from settings and are only
    passed for server databases. SQLite (used by the test suite) picks its
    own pool class.
"""

import logging
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from getyummy.config import settings
from getyummy.exceptions import ConflictError, DatabaseError, GetYummyError

logger = logging.getLogger(__name__)

# SQLSTATE for unique_violation (asyncpg exposes it as pgcode / sqlstate)
UNIQUE_VIOLATION_SQLSTATE = "23505"


def engine_options(database_url: str) -> Dict[str, Any]:
    """Engine keyword arguments appropriate for the given URL."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after commit, when the
# response model is serialized
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object with Alembic (`alembic/env.py`) and the test
    suite's `create_all`.
    """
    pass


# ── Error Translation ─────────────────────────────────────────────────────
def is_unique_violation(error: IntegrityError) -> bool:
    """
    True for unique-constraint violations; False for foreign-key, NOT NULL
    and check violations.
    """
    orig = error.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate:
        return sqlstate == UNIQUE_VIOLATION_SQLSTATE
    # SQLite: "UNIQUE constraint failed: recipes.name"
    return "unique constraint" in str(orig).lower()


def translate_integrity_error(error: IntegrityError) -> GetYummyError:
    if is_unique_violation(error):
        return ConflictError(context={"detail": str(error.orig)})
    return DatabaseError(context={"detail": str(error.orig)})


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler and its auth dependencies
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the exception handlers;
           raw SQLAlchemy errors (including ones raised by the commit) are
           translated first: unique violations to ConflictError, everything
           else to DatabaseError
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/recipes")
        async def list_recipes(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            logger.warning("Integrity error: %s", e.orig)
            raise translate_integrity_error(e) from e
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("Database error: %s", e)
            raise DatabaseError(context={"detail": str(e)}) from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Closes all pooled connections; called from the app lifespan on shutdown."""
    await engine.dispose()
