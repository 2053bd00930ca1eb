import asyncio

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.database.providers import build_engine
from core.exceptions import StorageException
from transactions.entities import PaginationWindow, TransactionRecord
from transactions.store import TransactionStore
from transactions.wallets import WalletRegistrationStore

ADDRESS = "5paZC1vV94AF513DJn5yXj2TTnTEqm4RuPkWgKYujAi5"


def make_record(signature: str, timestamp: int, address: str = "abc", provider_id: str = "x1") -> TransactionRecord:
    return TransactionRecord(
        address=address,
        provider_id=provider_id,
        signature=signature,
        timestamp=timestamp,
        payload={"hash": signature, "type": "RECEIVE"},
    )


async def open_store(database_url: str, logger) -> TransactionStore:
    engine = build_engine(database_url)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    store = TransactionStore(engine=engine, session_factory=session_factory, logger=logger)
    await store.create_schema()
    return store


class TestTransactionStore:
    """
    Tests for append idempotence and snapshot-consistent pagination.
    """

    @pytest.mark.asyncio
    async def test_first_page_is_most_recent(self, store: TransactionStore):
        """
        Test three appended records come back newest first with pagination info.

        Parameters
        ----------
        store : TransactionStore
            Store fixture
        """
        for signature, timestamp in (("a", 100), ("b", 200), ("c", 300)):
            assert await store.append(make_record(signature, timestamp)) is True

        page = await store.query("abc", "x1", PaginationWindow(limit=2, offset=0))

        assert [record.timestamp for record in page.records] == [300, 200]
        assert page.has_more is True
        assert page.total_count == 3

    @pytest.mark.asyncio
    async def test_last_page(self, store: TransactionStore):
        for signature, timestamp in (("a", 100), ("b", 200), ("c", 300)):
            await store.append(make_record(signature, timestamp))

        page = await store.query("abc", "x1", PaginationWindow(limit=2, offset=2))

        assert [record.signature for record in page.records] == ["a"]
        assert page.has_more is False
        assert page.total_count == 3

    @pytest.mark.asyncio
    async def test_duplicate_append_is_a_no_op(self, store: TransactionStore):
        assert await store.append(make_record("a", 100)) is True
        assert await store.append(make_record("a", 999)) is False

        assert await store.count("abc", "x1") == 1
        page = await store.query("abc", "x1", PaginationWindow(limit=10))
        assert page.records[0].timestamp == 100

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_appends(self, store: TransactionStore):
        results = await asyncio.gather(*(store.append(make_record("a", 100)) for _ in range(5)))

        assert results.count(True) == 1
        assert await store.count("abc", "x1") == 1

    @pytest.mark.asyncio
    async def test_same_signature_on_other_key_is_kept(self, store: TransactionStore):
        await store.append(make_record("a", 100))
        await store.append(make_record("a", 100, provider_id="x1-testnet"))
        await store.append(make_record("a", 100, address="def"))

        assert await store.count("abc", "x1") == 1
        assert await store.count("abc", "x1-testnet") == 1
        assert await store.count("def", "x1") == 1

    @pytest.mark.asyncio
    async def test_page_never_exceeds_limit(self, store: TransactionStore):
        for index in range(7):
            await store.append(make_record(f"sig-{index}", index))

        for limit in (0, 1, 3, 7, 10):
            page = await store.query("abc", "x1", PaginationWindow(limit=limit, offset=0))
            assert len(page.records) <= limit
            assert page.total_count == 7

    @pytest.mark.asyncio
    async def test_equal_timestamps_have_a_stable_order(self, store: TransactionStore):
        for signature in ("a", "b", "c"):
            await store.append(make_record(signature, 100))

        first = await store.query("abc", "x1", PaginationWindow(limit=2))
        second = await store.query("abc", "x1", PaginationWindow(limit=2, offset=2), snapshot_id=first.snapshot_id)

        signatures = [record.signature for record in first.records + second.records]
        assert signatures == ["c", "b", "a"]

    @pytest.mark.asyncio
    async def test_snapshot_ignores_later_appends(self, store: TransactionStore):
        """
        Test paging with a snapshot id neither duplicates nor skips records.

        Parameters
        ----------
        store : TransactionStore
            Store fixture
        """
        for index in range(4):
            await store.append(make_record(f"old-{index}", 100 + index))

        first = await store.query("abc", "x1", PaginationWindow(limit=2))
        await store.append(make_record("new", 1000))
        second = await store.query("abc", "x1", PaginationWindow(limit=2, offset=2), snapshot_id=first.snapshot_id)

        seen = [record.signature for record in first.records + second.records]
        assert seen == ["old-3", "old-2", "old-1", "old-0"]
        assert second.total_count == 4
        assert second.has_more is False

        fresh = await store.query("abc", "x1", PaginationWindow(limit=2))
        assert fresh.records[0].signature == "new"
        assert fresh.total_count == 5

    @pytest.mark.asyncio
    async def test_empty_history(self, store: TransactionStore):
        page = await store.query("nobody", "x1", PaginationWindow(limit=10))

        assert page.records == []
        assert page.has_more is False
        assert page.total_count == 0
        assert page.snapshot_id == 0

    @pytest.mark.asyncio
    async def test_records_survive_reopen(self, database_url, logger):
        store = await open_store(database_url, logger)
        await store.append(make_record("a", 100))
        await store.engine.dispose()

        reopened = await open_store(database_url, logger)
        try:
            page = await reopened.query("abc", "x1", PaginationWindow(limit=10))
        finally:
            await reopened.engine.dispose()

        assert [record.signature for record in page.records] == ["a"]
        assert page.records[0].payload == {"hash": "a", "type": "RECEIVE"}


class TestWalletRegistrationStore:
    """
    Tests for wallets tracked by the indexer.
    """

    @pytest.mark.asyncio
    async def test_auto_register_only_once(self, wallets: WalletRegistrationStore):
        assert await wallets.auto_register(ADDRESS, "X1-mainnet") is True
        assert await wallets.auto_register(ADDRESS, "X1-mainnet") is False

        registered = await wallets.list_registered()
        assert len(registered) == 1
        assert registered[0].enabled is True

    @pytest.mark.asyncio
    async def test_register_updates_enabled(self, wallets: WalletRegistrationStore):
        await wallets.register(ADDRESS, "X1-mainnet")
        registration = await wallets.register(ADDRESS, "X1-mainnet", enabled=False)

        assert registration.enabled is False
        assert await wallets.list_registered(enabled_only=True) == []

    @pytest.mark.asyncio
    async def test_auto_register_keeps_disabled_wallet_disabled(self, wallets: WalletRegistrationStore):
        await wallets.register(ADDRESS, "X1-mainnet", enabled=False)
        await wallets.auto_register(ADDRESS, "X1-mainnet")

        registered = await wallets.list_registered()
        assert registered[0].enabled is False

    @pytest.mark.asyncio
    async def test_update_last_indexed(self, wallets: WalletRegistrationStore):
        await wallets.register(ADDRESS, "X1-mainnet")
        await wallets.register(ADDRESS, "SOLANA-mainnet")

        assert await wallets.update_last_indexed(ADDRESS, "X1-mainnet") == 1
        assert await wallets.update_last_indexed(ADDRESS) == 2
        assert await wallets.update_last_indexed("unknown") == 0

        registered = await wallets.list_registered()
        assert all(registration.last_indexed is not None for registration in registered)

    @pytest.mark.asyncio
    async def test_register_fails_when_every_commit_conflicts(self, wallets: WalletRegistrationStore, monkeypatch):
        """
        Test a registration that never commits is reported, not returned.
        """
        commits = []

        async def conflicting_commit(session):
            commits.append(session)
            raise IntegrityError("INSERT INTO wallets", {}, Exception("UNIQUE constraint failed"))

        monkeypatch.setattr(AsyncSession, "commit", conflicting_commit)

        with pytest.raises(StorageException):
            await wallets.register(ADDRESS, "X1-mainnet")

        assert len(commits) == 2
        monkeypatch.undo()
        assert await wallets.list_registered() == []
