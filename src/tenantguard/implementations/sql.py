"""
Shared SQLAlchemy helpers for the database backends.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenantguard.core.auth.errors import StoreUnavailableError


@asynccontextmanager
async def transaction(
    session_factory: async_sessionmaker[AsyncSession],
    error_cls: type[StoreUnavailableError],
) -> AsyncIterator[AsyncSession]:
    """
    One session, one transaction. Commits on success.

    Connectivity and driver failures surface as `error_cls`;
    IntegrityError passes through untouched so callers can treat a
    unique-constraint violation as "already exists".
    """
    try:
        async with session_factory() as session:
            async with session.begin():
                yield session
    except IntegrityError:
        raise
    except (DBAPIError, OSError) as e:
        raise error_cls(f"Database unavailable: {e}") from e
