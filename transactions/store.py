import logging
from typing import Any

from sqlalchemy import func, insert, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from core.exceptions import StorageException
from transactions.entities import PaginationWindow, TransactionPage, TransactionRecord
from transactions.models import Base, TransactionRow

_UPSERT_DIALECTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


async def insert_ignoring_conflicts(session: AsyncSession, model: type[Base], values: dict[str, Any]) -> bool:
    """
    Insert one row unless it violates a unique constraint.

    Parameters
    ----------
    session : AsyncSession
        Open session; the caller commits
    model : type[Base]
        Mapped class
    values : dict[str, Any]
        Column values

    Returns
    -------
    bool
        True if the row was inserted, False if it already existed
    """
    dialect_insert = _UPSERT_DIALECTS.get(session.bind.dialect.name)
    if dialect_insert is not None:
        result = await session.execute(dialect_insert(model).values(**values).on_conflict_do_nothing())
        return result.rowcount == 1

    try:
        async with session.begin_nested():
            await session.execute(insert(model).values(**values))
    except IntegrityError:
        return False
    return True


class TransactionStore:
    """
    Durable, append-only transaction history.

    Parameters
    ----------
    engine : AsyncEngine
        Database engine
    session_factory : async_sessionmaker[AsyncSession]
        Session factory
    logger : logging.Logger
        Logger instance
    """

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession],
        logger: logging.Logger
    ):
        self.engine = engine
        self.session_factory = session_factory
        self.logger = logger

    async def create_schema(self) -> None:
        """Create the history and wallet tables if missing."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to create tables: {e}")
            raise StorageException("Failed to initialize transaction storage") from e
        self.logger.info("Transaction tables ready")

    async def append(self, record: TransactionRecord) -> bool:
        """
        Durably append a record; re-appending the same signature is a no-op.

        Parameters
        ----------
        record : TransactionRecord
            Record to store

        Returns
        -------
        bool
            True if inserted, False if it was a duplicate

        Raises
        ------
        StorageException
            If the database is unavailable
        """
        values = {
            "address": record.address,
            "provider_id": record.provider_id,
            "signature": record.signature,
            "timestamp": record.timestamp,
            "payload": record.payload,
        }
        try:
            async with self.session_factory() as session:
                inserted = await insert_ignoring_conflicts(session, TransactionRow, values)
                await session.commit()
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to store transaction {record.signature}: {e}")
            raise StorageException("Failed to store transaction") from e
        return inserted

    async def query(
        self,
        address: str,
        provider_id: str,
        window: PaginationWindow,
        snapshot_id: int | None = None
    ) -> TransactionPage:
        """
        Read one page of history, most recent first.

        Only rows with ``id <= snapshot_id`` are visible, so paging with the
        returned watermark never duplicates or skips a record while new
        records are being appended.

        Parameters
        ----------
        address : str
            Wallet address
        provider_id : str
            Canonical network identifier
        window : PaginationWindow
            Limit and offset
        snapshot_id : int | None
            Watermark from a previous page; None starts a new snapshot

        Returns
        -------
        TransactionPage
            Records with ``has_more``, ``total_count`` and ``snapshot_id``
        """
        scope = (TransactionRow.address == address, TransactionRow.provider_id == provider_id)
        try:
            async with self.session_factory() as session:
                if snapshot_id is None:
                    result = await session.execute(
                        select(func.coalesce(func.max(TransactionRow.id), 0)).where(*scope)
                    )
                    snapshot_id = result.scalar_one()

                visible = (*scope, TransactionRow.id <= snapshot_id)
                result = await session.execute(select(func.count(TransactionRow.id)).where(*visible))
                total_count = result.scalar_one()

                query = (
                    select(TransactionRow)
                    .where(*visible)
                    .order_by(TransactionRow.timestamp.desc(), TransactionRow.id.desc())
                    .limit(window.limit)
                    .offset(window.offset)
                )
                result = await session.execute(query)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to read transactions for {address} on {provider_id}: {e}")
            raise StorageException("Failed to read transactions") from e

        records = [TransactionRecord.model_validate(row) for row in rows]
        return TransactionPage(
            records=records,
            has_more=window.offset + len(records) < total_count,
            total_count=total_count,
            snapshot_id=snapshot_id,
        )

    async def count(self, address: str, provider_id: str) -> int:
        """Number of records stored for ``(address, provider_id)``."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(func.count(TransactionRow.id)).where(
                        TransactionRow.address == address,
                        TransactionRow.provider_id == provider_id,
                    )
                )
                return result.scalar_one()
        except SQLAlchemyError as e:
            raise StorageException("Failed to count transactions") from e
