import logging
from typing import Annotated, AsyncIterable

import aiohttp
from dishka import Provider, Scope, provide, FromComponent

from core.environment.config import Settings
from core.redis.providers import PriceCache
from networks.registry import NetworkRegistry
from wallet.cache import BalanceCache
from wallet.clients import NativeChainClient, SecondaryChainClient, UpstreamRpcClient
from wallet.pricing import PriceService
from wallet.usecases import GetWalletBalanceUseCase


class WalletProvider(Provider):
    """
    Provider for balance-related dependencies.
    """

    component = "wallet"

    @provide(scope=Scope.APP)
    def get_price_service(
        self,
        price_cache: Annotated[PriceCache, FromComponent("cache")],
        session: Annotated[aiohttp.ClientSession, FromComponent("http")],
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> PriceService:
        """
        Provide price service.

        Parameters
        ----------
        price_cache : PriceCache
            Oracle prices shared through Redis
        session : aiohttp.ClientSession
            Shared HTTP session
        settings : Settings
            Application settings
        logger : logging.Logger
            Logger instance

        Returns
        -------
        PriceService
            Price service instance
        """
        return PriceService(price_cache=price_cache, session=session, settings=settings, logger=logger)

    @provide(scope=Scope.APP)
    def get_upstream_client(
        self,
        price_service: PriceService,
        session: Annotated[aiohttp.ClientSession, FromComponent("http")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> UpstreamRpcClient:
        """
        Provide upstream RPC client with one chain client per family.

        Parameters
        ----------
        price_service : PriceService
            Price service
        session : aiohttp.ClientSession
            Shared HTTP session
        logger : logging.Logger
            Logger instance

        Returns
        -------
        UpstreamRpcClient
            Upstream client instance
        """
        chain_clients = [
            NativeChainClient(session=session, price_service=price_service, logger=logger),
            SecondaryChainClient(session=session, price_service=price_service, logger=logger),
        ]
        return UpstreamRpcClient(chain_clients=chain_clients, session=session, logger=logger)

    @provide(scope=Scope.APP)
    async def get_balance_cache(
        self,
        registry: Annotated[NetworkRegistry, FromComponent("networks")],
        upstream: UpstreamRpcClient,
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> AsyncIterable[BalanceCache]:
        """
        Provide the process-wide balance cache, closed on shutdown.

        Parameters
        ----------
        registry : NetworkRegistry
            Network lookup
        upstream : UpstreamRpcClient
            Upstream client
        settings : Settings
            Application settings
        logger : logging.Logger
            Logger instance

        Yields
        ------
        BalanceCache
            Balance cache instance
        """
        cache = BalanceCache(
            registry=registry,
            upstream=upstream,
            logger=logger,
            ttl_ms=settings.balance_cache_ttl_ms,
            max_entries=settings.balance_cache_max_entries,
        )
        try:
            yield cache
        finally:
            await cache.close()

    @provide(scope=Scope.REQUEST)
    def get_wallet_balance_use_case(
        self,
        registry: Annotated[NetworkRegistry, FromComponent("networks")],
        balance_cache: BalanceCache,
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> GetWalletBalanceUseCase:
        """
        Provide get wallet balance use case.

        Returns
        -------
        GetWalletBalanceUseCase
            Get wallet balance use case
        """
        return GetWalletBalanceUseCase(registry=registry, balance_cache=balance_cache, logger=logger)
