"""
Base service class for the SSH leaderboard.

Provides async database session management and retry logic for read-only
service operations. Services never hold a session between calls.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Errors worth another attempt within the same call
RETRYABLE_ERRORS: Tuple[Type[BaseException], ...] = (SQLAlchemyError, OSError, asyncio.TimeoutError)

class BaseService:
    """Base class for services that read from the backing store."""

    def __init__(self, session_factory: Optional[async_sessionmaker]):
        """
        Initialize base service with session factory.

        Args:
            session_factory: Async session factory from Database class, or None
                when no database is configured
        """
        self.session_factory = session_factory

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a short-lived session that is always released on exit."""
        session = self.session_factory()
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def execute_with_retry(self, func: Callable[[], Awaitable[T]], max_retries: int = 3) -> T:
        """Execute a coroutine function, retrying on transient store errors."""
        for attempt in range(max_retries):
            try:
                return await func()
            except RETRYABLE_ERRORS as e:
                if attempt == max_retries - 1:
                    raise
                logger.warning(f"Retry attempt {attempt + 1} for {func.__name__}: {e}")
                await asyncio.sleep(0.1 * (2 ** attempt))  # Exponential backoff
        raise ValueError("max_retries must be at least 1")
