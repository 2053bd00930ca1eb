from typing import Annotated, Any

from fastapi import APIRouter, Query
from dishka.integrations.fastapi import inject
from dishka import FromComponent

from graphql_bridge.schemas import GraphQLRequest
from graphql_bridge.usecases import ExecuteGraphQLUseCase

router = APIRouter(tags=["GraphQL"])


@router.post("/v2/graphql")
@inject
async def graphql(
    request: GraphQLRequest,
    use_case: Annotated[
        ExecuteGraphQLUseCase, FromComponent("graphql")
    ],
    provider_id: str = Query("X1-mainnet", alias="providerId"),
) -> dict[str, Any]:
    """
    GraphQL endpoint used by wallet clients.

    Parameters
    ----------
    request : GraphQLRequest
        Query, operation name and variables
    use_case : ExecuteGraphQLUseCase
        Use case for answering or forwarding the request
    provider_id : str
        Network identifier

    Returns
    -------
    dict[str, Any]
        GraphQL response body
    """
    return await use_case(provider_id=provider_id, request=request)
