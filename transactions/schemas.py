from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from networks.addresses import is_valid_address


def _validate_address(value: str) -> str:
    value = value.strip()
    if not is_valid_address(value):
        raise ValueError('Invalid base58 account address')
    return value


class GetTransactionsRequest(BaseModel):
    """
    Request schema for transaction history.

    Attributes
    ----------
    address : str
        Wallet address
    provider_id : str
        Network identifier (``providerId``)
    limit : int | None
        Page size; capped server-side, defaults when omitted
    offset : int
        Number of records to skip
    snapshot_id : int | None
        Watermark returned by a previous page (``snapshotId``)
    token_mint : str | None
        Sent by wallet clients (``tokenMint``); accepted and ignored, history is
        native-token only
    """
    address: str = Field(..., description="Wallet address")
    provider_id: str = Field(..., alias="providerId", min_length=1, description="Network identifier")
    limit: int | None = Field(default=None, ge=0, description="Page size")
    offset: int = Field(default=0, ge=0, description="Records to skip")
    snapshot_id: int | None = Field(default=None, alias="snapshotId", ge=0)
    token_mint: str | None = Field(default=None, alias="tokenMint")

    _check_address = field_validator('address')(_validate_address)

    model_config = ConfigDict(populate_by_name=True)


class RequestParams(BaseModel):
    """Echo of the effective request parameters."""
    address: str
    provider_id: str = Field(alias="providerId")
    limit: int
    offset: int

    model_config = ConfigDict(populate_by_name=True)


class ResponseMeta(BaseModel):
    """Response metadata."""
    timestamp: str
    version: str


class TransactionsResponse(BaseModel):
    """
    Response schema for transaction history.

    Attributes
    ----------
    transactions : list[dict]
        Transactions, most recent first
    has_more : bool
        Whether another page exists (``hasMore``)
    total_count : int
        Number of stored transactions (``totalCount``)
    snapshot_id : int
        Watermark for the following pages (``snapshotId``)
    request_params : RequestParams
        Effective parameters (``requestParams``)
    meta : ResponseMeta
        Response metadata
    """
    transactions: list[dict[str, Any]]
    has_more: bool = Field(alias="hasMore")
    total_count: int = Field(alias="totalCount")
    snapshot_id: int = Field(alias="snapshotId")
    request_params: RequestParams = Field(alias="requestParams")
    meta: ResponseMeta

    model_config = ConfigDict(populate_by_name=True)


class StoreTransactionItem(BaseModel):
    """
    One transaction pushed by an ingestion client.

    Only ``hash`` and ``timestamp`` are interpreted; every other field is
    stored as-is and returned to wallet clients.
    """
    hash: str = Field(..., min_length=1)
    timestamp: datetime | None = Field(default=None, description="ISO-8601 or unix time; defaults to now")

    model_config = ConfigDict(extra="allow")


class StoreTransactionsRequest(BaseModel):
    """Request schema for ``POST /transactions/store``."""
    address: str
    provider_id: str = Field(..., alias="providerId", min_length=1)
    transactions: list[StoreTransactionItem]

    _check_address = field_validator('address')(_validate_address)

    model_config = ConfigDict(populate_by_name=True)


class StoreResult(BaseModel):
    """Outcome for one pushed transaction."""
    hash: str
    status: str


class StoreTransactionsResponse(BaseModel):
    """Response schema for ``POST /transactions/store``."""
    success: bool
    inserted: int
    duplicates: int
    results: list[StoreResult]


class RegisterWalletRequest(BaseModel):
    """Request schema for ``POST /wallets/register``."""
    address: str
    network: str = Field(default="X1-testnet", min_length=1, description="Network identifier")
    enabled: bool = True

    _check_address = field_validator('address')(_validate_address)


class UpdateIndexedRequest(BaseModel):
    """Request schema for ``POST /wallets/update-indexed``."""
    address: str
    provider_id: str | None = Field(default=None, alias="providerId")

    _check_address = field_validator('address')(_validate_address)

    model_config = ConfigDict(populate_by_name=True)


class WalletItem(BaseModel):
    """A registered wallet."""
    address: str
    network: str
    enabled: bool
    last_indexed: str | None = Field(default=None, alias="lastIndexed")

    model_config = ConfigDict(populate_by_name=True)


class WalletsResponse(BaseModel):
    """Response schema for ``GET /wallets``."""
    success: bool
    wallets: list[WalletItem]
    count: int


class RegisterWalletResponse(BaseModel):
    """Response schema for ``POST /wallets/register``."""
    success: bool
    wallet: WalletItem


class UpdateIndexedResponse(BaseModel):
    """Response schema for ``POST /wallets/update-indexed``."""
    success: bool
    updated: int
