import logging
from typing import Annotated, AsyncIterable

from dishka import Provider, Scope, provide, FromComponent
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from core.environment.config import Settings
from networks.registry import NetworkRegistry
from transactions.indexer import TransactionIndexer
from transactions.store import TransactionStore
from transactions.usecases import (
    GetTransactionsUseCase,
    ListWalletsUseCase,
    RegisterWalletUseCase,
    StoreTransactionsUseCase,
    UpdateLastIndexedUseCase,
)
from transactions.wallets import WalletRegistrationStore
from wallet.clients import UpstreamRpcClient


class TransactionsProvider(Provider):
    """
    Provider for transaction history dependencies.
    """

    component = "transactions"

    @provide(scope=Scope.APP)
    async def get_transaction_store(
        self,
        engine: Annotated[AsyncEngine, FromComponent("database")],
        session_factory: Annotated[async_sessionmaker[AsyncSession], FromComponent("database")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> AsyncIterable[TransactionStore]:
        """
        Provide the transaction store with its tables created.

        Parameters
        ----------
        engine : AsyncEngine
            Database engine
        session_factory : async_sessionmaker[AsyncSession]
            Session factory
        logger : logging.Logger
            Logger instance

        Yields
        ------
        TransactionStore
            Transaction store instance
        """
        store = TransactionStore(engine=engine, session_factory=session_factory, logger=logger)
        await store.create_schema()
        yield store

    @provide(scope=Scope.APP)
    def get_wallet_store(
        self,
        store: TransactionStore,
        session_factory: Annotated[async_sessionmaker[AsyncSession], FromComponent("database")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> WalletRegistrationStore:
        """
        Provide the wallet registration store.

        Depends on the transaction store so the tables exist before use.
        """
        return WalletRegistrationStore(session_factory=session_factory, logger=logger)

    @provide(scope=Scope.APP)
    def get_indexer(
        self,
        registry: Annotated[NetworkRegistry, FromComponent("networks")],
        upstream: Annotated[UpstreamRpcClient, FromComponent("wallet")],
        store: TransactionStore,
        wallets: WalletRegistrationStore,
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> TransactionIndexer:
        """
        Provide the background transaction indexer.

        Returns
        -------
        TransactionIndexer
            Indexer polling registered wallets
        """
        return TransactionIndexer(
            registry=registry,
            upstream=upstream,
            store=store,
            wallets=wallets,
            logger=logger,
            poll_interval=settings.indexer_poll_interval_seconds,
            max_signatures=settings.indexer_max_signatures,
        )

    @provide(scope=Scope.REQUEST)
    def get_transactions_use_case(
        self,
        registry: Annotated[NetworkRegistry, FromComponent("networks")],
        store: TransactionStore,
        wallets: WalletRegistrationStore,
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> GetTransactionsUseCase:
        """
        Provide get transactions use case.

        Parameters
        ----------
        registry : NetworkRegistry
            Network lookup
        store : TransactionStore
            Transaction store
        wallets : WalletRegistrationStore
            Wallet registrations
        settings : Settings
            Application settings with page limits
        logger : logging.Logger
            Logger instance

        Returns
        -------
        GetTransactionsUseCase
            Get transactions use case
        """
        return GetTransactionsUseCase(
            registry=registry,
            store=store,
            wallets=wallets,
            logger=logger,
            default_limit=settings.transactions_default_limit,
            max_limit=settings.transactions_max_limit,
        )

    @provide(scope=Scope.REQUEST)
    def get_store_transactions_use_case(
        self,
        registry: Annotated[NetworkRegistry, FromComponent("networks")],
        store: TransactionStore,
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> StoreTransactionsUseCase:
        return StoreTransactionsUseCase(registry=registry, store=store, logger=logger)

    @provide(scope=Scope.REQUEST)
    def get_register_wallet_use_case(
        self,
        registry: Annotated[NetworkRegistry, FromComponent("networks")],
        wallets: WalletRegistrationStore
    ) -> RegisterWalletUseCase:
        return RegisterWalletUseCase(registry=registry, wallets=wallets)

    @provide(scope=Scope.REQUEST)
    def get_list_wallets_use_case(self, wallets: WalletRegistrationStore) -> ListWalletsUseCase:
        return ListWalletsUseCase(wallets=wallets)

    @provide(scope=Scope.REQUEST)
    def get_update_indexed_use_case(
        self,
        registry: Annotated[NetworkRegistry, FromComponent("networks")],
        wallets: WalletRegistrationStore
    ) -> UpdateLastIndexedUseCase:
        return UpdateLastIndexedUseCase(registry=registry, wallets=wallets)
