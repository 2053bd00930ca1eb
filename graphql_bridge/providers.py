import logging
from typing import Annotated

from dishka import Provider, Scope, provide, FromComponent

from core.environment.config import Settings
from graphql_bridge.usecases import ExecuteGraphQLUseCase
from networks.registry import NetworkRegistry
from wallet.clients import UpstreamRpcClient


class GraphQLProvider(Provider):
    """
    Provider for the GraphQL bridge.
    """

    component = "graphql"

    @provide(scope=Scope.REQUEST)
    def get_graphql_use_case(
        self,
        registry: Annotated[NetworkRegistry, FromComponent("networks")],
        upstream: Annotated[UpstreamRpcClient, FromComponent("wallet")],
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> ExecuteGraphQLUseCase:
        """
        Provide GraphQL use case.

        Returns
        -------
        ExecuteGraphQLUseCase
            GraphQL use case
        """
        return ExecuteGraphQLUseCase(
            registry=registry,
            upstream=upstream,
            priority_fee_estimate=settings.priority_fee_estimate,
            logger=logger,
        )
