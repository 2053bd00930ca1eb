from dishka import AsyncContainer, make_async_container
from dishka.integrations.fastapi import FastapiProvider

from core.database.providers import DatabaseProvider
from core.environment.providers import EnvironmentProvider
from core.http.providers import HttpProvider
from core.logging.providers import LoggerProvider
from core.redis.providers import RedisProvider, CacheProvider
from graphql_bridge.providers import GraphQLProvider
from networks.providers import NetworkProvider
from transactions.providers import TransactionsProvider
from wallet.providers import WalletProvider


def make_container() -> AsyncContainer:
    """
    Assemble the application container.

    Returns
    -------
    AsyncContainer
        Container with one component per package
    """
    return make_async_container(
        FastapiProvider(),
        EnvironmentProvider(),
        LoggerProvider(),
        RedisProvider(),
        CacheProvider(),
        HttpProvider(),
        DatabaseProvider(),
        NetworkProvider(),
        WalletProvider(),
        TransactionsProvider(),
        GraphQLProvider(),
    )
