from typing import Annotated

from fastapi import APIRouter, Query
from dishka.integrations.fastapi import inject
from dishka import FromComponent

from wallet.schemas import WalletBalanceResponse
from wallet.usecases import GetWalletBalanceUseCase

router = APIRouter(tags=["Wallet"])


@router.get("/wallet/{address}", response_model=WalletBalanceResponse)
@inject
async def get_wallet_balance(
    address: str,
    use_case: Annotated[
        GetWalletBalanceUseCase, FromComponent("wallet")
    ],
    provider_id: str | None = Query(None, alias="providerId", description="Network identifier, e.g. X1-mainnet"),
) -> WalletBalanceResponse:
    """
    Get native balance and token holdings of a wallet.

    Parameters
    ----------
    address : str
        Wallet address
    use_case : GetWalletBalanceUseCase
        Use case for getting wallet balance
    provider_id : str | None
        Network identifier; missing or unknown values are rejected with 400

    Returns
    -------
    WalletBalanceResponse
        Wallet balance information
    """
    return await use_case(address=address, provider_id=provider_id)
