import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.exceptions import StorageException
from transactions.entities import WalletRegistration
from transactions.models import WalletRegistrationRow
from transactions.store import insert_ignoring_conflicts


class WalletRegistrationStore:
    """Wallets whose history the indexer keeps up to date."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], logger: logging.Logger):
        self.session_factory = session_factory
        self.logger = logger

    async def register(self, address: str, provider_id: str, enabled: bool = True) -> WalletRegistration:
        """
        Register a wallet, or update ``enabled`` if it is already registered.
        """
        query = select(WalletRegistrationRow).where(
            WalletRegistrationRow.address == address,
            WalletRegistrationRow.provider_id == provider_id,
        )
        try:
            async with self.session_factory() as session:
                for _ in range(2):
                    row = (await session.execute(query)).scalar_one_or_none()
                    if row is None:
                        row = WalletRegistrationRow(
                            address=address, provider_id=provider_id, enabled=enabled, last_indexed=None
                        )
                        session.add(row)
                    else:
                        row.enabled = enabled
                    try:
                        await session.commit()
                        break
                    except IntegrityError:
                        # Registered concurrently; retry as an update
                        await session.rollback()
                else:
                    self.logger.error(f"Failed to register wallet {address}: conflicting concurrent writes")
                    raise StorageException("Failed to register wallet")
                return WalletRegistration.model_validate(row)
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to register wallet {address}: {e}")
            raise StorageException("Failed to register wallet") from e

    async def auto_register(self, address: str, provider_id: str) -> bool:
        """
        Register a wallet unless it is already known.

        Returns
        -------
        bool
            True if the wallet was newly registered
        """
        try:
            async with self.session_factory() as session:
                inserted = await insert_ignoring_conflicts(
                    session,
                    WalletRegistrationRow,
                    {"address": address, "provider_id": provider_id, "enabled": True},
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageException("Failed to register wallet") from e
        if inserted:
            self.logger.info(f"Auto-registered wallet {address} on {provider_id}")
        return inserted

    async def list_registered(self, enabled_only: bool = False) -> list[WalletRegistration]:
        query = select(WalletRegistrationRow).order_by(WalletRegistrationRow.created_at.desc(), WalletRegistrationRow.id.desc())
        if enabled_only:
            query = query.where(WalletRegistrationRow.enabled.is_(True))
        try:
            async with self.session_factory() as session:
                rows = (await session.execute(query)).scalars().all()
        except SQLAlchemyError as e:
            raise StorageException("Failed to list wallets") from e
        return [WalletRegistration.model_validate(row) for row in rows]

    async def update_last_indexed(self, address: str, provider_id: str | None = None) -> int:
        """
        Stamp ``last_indexed`` with the current time.

        Returns
        -------
        int
            Number of registrations updated
        """
        statement = (
            update(WalletRegistrationRow)
            .where(WalletRegistrationRow.address == address)
            .values(last_indexed=datetime.now(timezone.utc))
        )
        if provider_id is not None:
            statement = statement.where(WalletRegistrationRow.provider_id == provider_id)
        try:
            async with self.session_factory() as session:
                result = await session.execute(statement)
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageException("Failed to update wallet") from e
        return result.rowcount
