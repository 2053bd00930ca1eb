import logging

from core.exceptions import InvalidAddressException
from networks.addresses import is_valid_address
from networks.registry import NetworkRegistry
from wallet.cache import BalanceCache
from wallet.schemas import NATIVE_MINT, TokenBalanceResponse, WalletBalanceResponse


class GetWalletBalanceUseCase:
    """
    Use case for getting the native balance of a wallet.

    Parameters
    ----------
    registry : NetworkRegistry
        Network lookup
    balance_cache : BalanceCache
        Coalescing balance cache
    logger : logging.Logger
        Logger instance
    """

    def __init__(self, registry: NetworkRegistry, balance_cache: BalanceCache, logger: logging.Logger):
        self.registry = registry
        self.balance_cache = balance_cache
        self.logger = logger

    async def __call__(self, address: str, provider_id: str | None) -> WalletBalanceResponse:
        """
        Execute use case.

        Parameters
        ----------
        address : str
            Wallet address
        provider_id : str
            Network identifier or alias

        Returns
        -------
        WalletBalanceResponse
            Balance response
        """
        descriptor = self.registry.resolve(provider_id)
        if not is_valid_address(address):
            raise InvalidAddressException(f"Invalid address {address!r}")

        self.logger.info(f"Wallet request for {address} on {descriptor.network_id} (providerId: {provider_id})")
        snapshot = await self.balance_cache.get_balance(address, descriptor.network_id)

        balance = float(snapshot.native_amount)
        value_usd = float(snapshot.usd_value)
        return WalletBalanceResponse(
            balance=balance,
            balance_usd=value_usd,
            tokens=[
                TokenBalanceResponse(
                    mint=NATIVE_MINT,
                    decimals=9,
                    balance=balance,
                    logo=descriptor.logo,
                    name=descriptor.token_name,
                    symbol=descriptor.token_symbol,
                    price=float(snapshot.unit_price),
                    value_usd=value_usd,
                )
            ],
        )
