"""
Database engine and session factory for the transaction store.
"""
import logging
from typing import Annotated, AsyncIterable

from dishka import Provider, Scope, provide, FromComponent
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from core.environment.config import Settings


def build_engine(database_url: str) -> AsyncEngine:
    """
    Create an async engine for ``database_url``.

    SQLite files get no pool sizing; server databases get a bounded pool
    with pre-ping so dropped connections are replaced transparently.
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=False)
    return create_async_engine(
        database_url,
        echo=False,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


class DatabaseProvider(Provider):
    """
    Provider for database connections.
    """

    component = "database"
    scope = Scope.APP

    @provide(scope=Scope.APP)
    async def provide_engine(
        self,
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> AsyncIterable[AsyncEngine]:
        """
        Provide the async engine, disposed on container shutdown.

        Parameters
        ----------
        settings : Settings
            Application settings
        logger : logging.Logger
            Logger instance

        Yields
        ------
        AsyncEngine
            Engine bound to ``settings.database_url``
        """
        engine = build_engine(settings.database_url)
        logger.info(f"Database engine created for {engine.url.render_as_string(hide_password=True)}")
        try:
            yield engine
        finally:
            await engine.dispose()
            logger.info("Database connections closed")

    @provide(scope=Scope.APP)
    def provide_session_factory(self, engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
        """
        Provide the session factory.

        Parameters
        ----------
        engine : AsyncEngine
            Database engine

        Returns
        -------
        async_sessionmaker[AsyncSession]
            Factory of sessions that keep attributes after commit
        """
        return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
