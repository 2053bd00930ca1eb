import asyncio
import logging
from decimal import Decimal, InvalidOperation

import aiohttp

from core.environment.config import Settings
from core.redis.providers import PriceCache
from networks.registry import ChainFamily, NetworkDescriptor


class PriceService:
    """
    USD unit prices of native tokens.

    The native token has a fixed configured price. The secondary token is
    priced by the oracle; answers are cached in Redis and the last known
    price is reused while the oracle is failing.

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
    """

    def __init__(
        self,
        price_cache: PriceCache,
        session: aiohttp.ClientSession,
        settings: Settings,
        logger: logging.Logger
    ):
        self.price_cache = price_cache
        self.session = session
        self.settings = settings
        self.logger = logger
        self._last_known: dict[str, Decimal] = {}

    async def get_unit_price(self, descriptor: NetworkDescriptor) -> Decimal:
        """
        Price of one whole native unit of ``descriptor``'s token.

        Parameters
        ----------
        descriptor : NetworkDescriptor
            Resolved network

        Returns
        -------
        Decimal
            USD price
        """
        if descriptor.chain_family is ChainFamily.NATIVE:
            return Decimal(str(self.settings.xnt_price_usd))
        return await self._oracle_price(descriptor.token_symbol)

    async def _oracle_price(self, symbol: str) -> Decimal:
        cached = await self.price_cache.get(symbol)
        if cached is not None:
            return cached

        price = await self._fetch_oracle_price(symbol)
        if price is not None:
            self._last_known[symbol] = price
            await self.price_cache.put(symbol, price, ttl=self.settings.price_cache_ttl_seconds)
            return price

        return self._last_known.get(symbol, Decimal(str(self.settings.sol_fallback_price_usd)))

    async def _fetch_oracle_price(self, symbol: str) -> Decimal | None:
        try:
            async with self.session.get(self.settings.price_oracle_url) as response:
                if response.status != 200:
                    self.logger.warning(f"Price oracle answered HTTP {response.status}")
                    return None
                data = await response.json(content_type=None)
            price = Decimal(str(data["agg"][symbol]["avg"]))
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError, KeyError, TypeError, InvalidOperation) as e:
            self.logger.warning(f"Error fetching {symbol} price from oracle: {e}")
            return None

        if not price.is_finite() or price <= 0:
            self.logger.warning(f"Price oracle returned non-positive {symbol} price {price}")
            return None
        return price
