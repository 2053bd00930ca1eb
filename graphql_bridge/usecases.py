import logging
from typing import Any

from graphql_bridge.schemas import GraphQLRequest
from networks.registry import NetworkRegistry
from wallet.clients import UpstreamRpcClient

PRIORITY_FEE_OPERATION = "GetSolanaPriorityFee"


class ExecuteGraphQLUseCase:
    """
    Use case for answering GraphQL requests of wallet clients.

    Requests are forwarded unchanged when the network has an upstream
    GraphQL service. Without one only the priority fee estimate is
    answered; every other operation gets empty data.

    Parameters
    ----------
    registry : NetworkRegistry
        Network lookup
    upstream : UpstreamRpcClient
        Upstream client used for forwarding
    priority_fee_estimate : str
        Priority fee in microlamports answered locally
    logger : logging.Logger
        Logger instance
    """

    def __init__(
        self,
        registry: NetworkRegistry,
        upstream: UpstreamRpcClient,
        priority_fee_estimate: str,
        logger: logging.Logger
    ):
        self.registry = registry
        self.upstream = upstream
        self.priority_fee_estimate = priority_fee_estimate
        self.logger = logger

    async def __call__(self, provider_id: str | None, request: GraphQLRequest) -> dict[str, Any]:
        """
        Execute use case.

        Parameters
        ----------
        provider_id : str | None
            Network identifier or alias
        request : GraphQLRequest
            GraphQL request body

        Returns
        -------
        dict[str, Any]
            GraphQL response body
        """
        descriptor = self.registry.resolve(provider_id)
        operation = request.operation_name or "anonymous"

        if descriptor.graphql_url:
            self.logger.info(f"Forwarding GraphQL {operation} for {descriptor.network_id}")
            payload = request.model_dump(by_alias=True, exclude_none=True)
            return await self.upstream.forward_graphql(descriptor.graphql_url, payload)

        self.logger.info(f"Answering GraphQL {operation} locally for {descriptor.network_id}")
        if request.operation_name == PRIORITY_FEE_OPERATION or "solanaPriorityFeeEstimate" in request.query:
            return {"data": {"solanaPriorityFeeEstimate": self.priority_fee_estimate}}
        return {"data": {}}
