from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GraphQLRequest(BaseModel):
    """
    GraphQL request body as sent by wallet clients.

    Attributes
    ----------
    query : str
        GraphQL document
    operation_name : str | None
        Operation to execute (``operationName``)
    variables : dict | None
        Operation variables
    """
    query: str = Field(default="", description="GraphQL document")
    operation_name: str | None = Field(default=None, alias="operationName")
    variables: dict[str, Any] | None = None

    model_config = ConfigDict(populate_by_name=True)
