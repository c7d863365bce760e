import logging
from typing import Optional

from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from leaderboard.config import Config
from leaderboard.database.models import Base
from leaderboard.utils.leaderboard_exceptions import StartupError

def normalize_database_url(database_url: str) -> str:
    """Convert a plain database URL into its asyncio driver form"""
    if database_url.startswith('sqlite:///'):
        return database_url.replace('sqlite:///', 'sqlite+aiosqlite:///', 1)
    if database_url.startswith('postgres://'):
        return database_url.replace('postgres://', 'postgresql+asyncpg://', 1)
    if database_url.startswith('postgresql://'):
        return database_url.replace('postgresql://', 'postgresql+asyncpg://', 1)
    return database_url

class Database:
    def __init__(self, config: Config):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.engine = None
        self.async_session: Optional[async_sessionmaker] = None

    @property
    def session_factory(self) -> Optional[async_sessionmaker]:
        return self.async_session

    @property
    def is_configured(self) -> bool:
        return self.async_session is not None

    async def initialize(self):
        """Create the engine and session factory.

        No connection is opened here, so an unreachable store does not stop
        the server from starting; it shows up later as a failed fetch. Only a
        URL that cannot be used at all, or a failed schema creation when one
        was asked for, raises StartupError.
        """
        if not self.config.database_url:
            self.logger.warning("No database URL configured (DATABASE_ENDPOINT); leaderboard fetches will fail")
            return

        self.logger.info("Initializing database...")

        database_url = normalize_database_url(self.config.database_url)

        try:
            self.engine = create_async_engine(
                database_url,
                echo=self.config.debug,
                pool_pre_ping=True
            )
        except (ArgumentError, ImportError) as e:
            raise StartupError("database", f"unusable database URL: {e}") from e

        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        if self.config.create_schema:
            try:
                await self.create_schema()
            except (SQLAlchemyError, OSError) as e:
                raise StartupError("database", f"cannot create schema: {e}") from e

        self.logger.info("Database initialized successfully")

    async def create_schema(self):
        """Create all tables that do not exist yet"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.logger.info("Database schema ensured")

    async def close(self):
        """Close the database connection"""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.async_session = None
