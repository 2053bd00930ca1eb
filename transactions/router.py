from typing import Annotated

from fastapi import APIRouter, Query
from dishka.integrations.fastapi import inject
from dishka import FromComponent

from transactions.schemas import (
    GetTransactionsRequest,
    RegisterWalletRequest,
    RegisterWalletResponse,
    StoreTransactionsRequest,
    StoreTransactionsResponse,
    TransactionsResponse,
    UpdateIndexedRequest,
    UpdateIndexedResponse,
    WalletsResponse,
)
from transactions.usecases import (
    GetTransactionsUseCase,
    ListWalletsUseCase,
    RegisterWalletUseCase,
    StoreTransactionsUseCase,
    UpdateLastIndexedUseCase,
)

router = APIRouter(tags=["Transactions"])


@router.post("/transactions", response_model=TransactionsResponse)
@inject
async def get_transactions(
    request: GetTransactionsRequest,
    use_case: Annotated[
        GetTransactionsUseCase, FromComponent("transactions")
    ]
) -> TransactionsResponse:
    """
    Get a page of transaction history, most recent first.

    Parameters
    ----------
    request : GetTransactionsRequest
        Address, network, page bounds and optional snapshot watermark
    use_case : GetTransactionsUseCase
        Use case for reading history

    Returns
    -------
    TransactionsResponse
        Page of transactions with pagination info
    """
    return await use_case(
        address=request.address,
        provider_id=request.provider_id,
        limit=request.limit,
        offset=request.offset,
        snapshot_id=request.snapshot_id,
        token_mint=request.token_mint,
    )


@router.get("/transactions/{address}", response_model=TransactionsResponse)
@inject
async def get_transactions_by_address(
    address: str,
    use_case: Annotated[
        GetTransactionsUseCase, FromComponent("transactions")
    ],
    provider_id: str = Query("X1-mainnet", alias="providerId"),
    limit: int | None = Query(None, ge=0),
    offset: int = Query(0, ge=0),
    snapshot_id: int | None = Query(None, alias="snapshotId", ge=0),
) -> TransactionsResponse:
    """
    Query-string variant of ``POST /transactions``.
    """
    return await use_case(
        address=address,
        provider_id=provider_id,
        limit=limit,
        offset=offset,
        snapshot_id=snapshot_id,
    )


@router.post("/transactions/store", response_model=StoreTransactionsResponse)
@inject
async def store_transactions(
    request: StoreTransactionsRequest,
    use_case: Annotated[
        StoreTransactionsUseCase, FromComponent("transactions")
    ]
) -> StoreTransactionsResponse:
    """
    Append transactions to a wallet's history.

    Re-sending a transaction that is already stored is reported as a
    duplicate and leaves the history unchanged.

    Parameters
    ----------
    request : StoreTransactionsRequest
        Address, network and transactions to store
    use_case : StoreTransactionsUseCase
        Use case for ingesting transactions

    Returns
    -------
    StoreTransactionsResponse
        Inserted and duplicate counts with per-item status
    """
    return await use_case(
        address=request.address,
        provider_id=request.provider_id,
        items=request.transactions,
    )


@router.get("/wallets", response_model=WalletsResponse)
@inject
async def list_wallets(
    use_case: Annotated[
        ListWalletsUseCase, FromComponent("transactions")
    ]
) -> WalletsResponse:
    """List wallets registered for indexing."""
    return await use_case()


@router.post("/wallets/register", response_model=RegisterWalletResponse)
@inject
async def register_wallet(
    request: RegisterWalletRequest,
    use_case: Annotated[
        RegisterWalletUseCase, FromComponent("transactions")
    ]
) -> RegisterWalletResponse:
    """Register a wallet for indexing, or toggle an existing registration."""
    return await use_case(address=request.address, network=request.network, enabled=request.enabled)


@router.post("/wallets/update-indexed", response_model=UpdateIndexedResponse)
@inject
async def update_indexed(
    request: UpdateIndexedRequest,
    use_case: Annotated[
        UpdateLastIndexedUseCase, FromComponent("transactions")
    ]
) -> UpdateIndexedResponse:
    return await use_case(address=request.address, provider_id=request.provider_id)
