import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Annotated, AsyncIterable

from dishka import Provider, Scope, provide, FromComponent
from redis.asyncio import Redis
from redis.exceptions import RedisError

from core.environment.config import Settings


class RedisProvider(Provider):
    """
    Provider for Redis client.
    """

    scope = Scope.APP
    component = "redis"

    @provide(scope=Scope.APP)
    async def provide_redis_client(
        self,
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> AsyncIterable[Redis]:
        """
        Create Redis client for prices shared between gateway processes.

        An unreachable Redis is logged and tolerated: every lookup then
        misses and prices are fetched from the oracle.

        Parameters
        ----------
        settings : Settings
            Application settings
        logger : logging.Logger
            Logger instance

        Yields
        ------
        Redis
            Redis client instance
        """
        redis_client = Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=settings.redis_password if settings.redis_password else None,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )

        try:
            await redis_client.ping()
        except (RedisError, OSError) as e:
            logger.warning(f"Redis at {settings.redis_host}:{settings.redis_port} unavailable, prices are not shared: {e}")

        try:
            yield redis_client
        finally:
            await redis_client.aclose()


class PriceCache:
    """
    Oracle prices cached in Redis.

    A Redis failure is logged and reported as a miss, never raised.

    Parameters
    ----------
    redis_client : Redis
        Redis client instance
    logger : logging.Logger
        Logger instance
    namespace : str
        Prefix applied to every key
    """

    def __init__(self, redis_client: Redis, logger: logging.Logger, namespace: str = "wallet_gateway:price"):
        self.redis = redis_client
        self.logger = logger
        self.namespace = namespace

    def _key(self, symbol: str) -> str:
        return f"{self.namespace}:{symbol}"

    async def get(self, symbol: str) -> Decimal | None:
        """
        Get cached USD price of ``symbol``.

        Parameters
        ----------
        symbol : str
            Token symbol, e.g. ``SOL``

        Returns
        -------
        Decimal | None
            Cached price or None on miss or error
        """
        try:
            value = await self.redis.get(self._key(symbol))
        except RedisError as e:
            self.logger.warning(f"Price cache read failed for {symbol}: {e}")
            return None
        if not value:
            return None
        try:
            return Decimal(json.loads(value)["price"])
        except (ValueError, KeyError, TypeError, InvalidOperation):
            self.logger.warning(f"Ignoring malformed cached price for {symbol}: {value!r}")
            return None

    async def put(self, symbol: str, price: Decimal, ttl: int) -> bool:
        """
        Cache USD price of ``symbol``.

        Parameters
        ----------
        symbol : str
            Token symbol
        price : Decimal
            USD price
        ttl : int
            Time to live in seconds

        Returns
        -------
        bool
            Success status
        """
        try:
            await self.redis.setex(self._key(symbol), ttl, json.dumps({"price": str(price)}))
            return True
        except RedisError as e:
            self.logger.warning(f"Price cache write failed for {symbol}: {e}")
            return False


class CacheProvider(Provider):
    """
    Provider for the price cache.
    """

    component = "cache"
    scope = Scope.APP

    @provide(scope=Scope.APP)
    def provide_price_cache(
        self,
        redis_client: Annotated[Redis, FromComponent("redis")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> PriceCache:
        """
        Provide price cache.

        Parameters
        ----------
        redis_client : Redis
            Redis client instance
        logger : logging.Logger
            Logger instance

        Returns
        -------
        PriceCache
            Price cache instance
        """
        return PriceCache(redis_client, logger)
