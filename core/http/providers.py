from typing import Annotated, AsyncIterable

import aiohttp
from dishka import Provider, Scope, provide, FromComponent

from core.environment.config import Settings


class HttpProvider(Provider):
    """
    Provider for the shared outbound HTTP session.
    """

    component = "http"
    scope = Scope.APP

    @provide(scope=Scope.APP)
    async def provide_http_session(
        self,
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> AsyncIterable[aiohttp.ClientSession]:
        """
        Create one aiohttp session for all upstream calls.

        Every request made through the session is bounded by
        ``upstream_timeout_seconds``.

        Parameters
        ----------
        settings : Settings
            Application settings

        Yields
        ------
        aiohttp.ClientSession
            Session closed on container shutdown
        """
        session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=settings.upstream_timeout_seconds),
            headers={"Content-Type": "application/json"},
        )
        try:
            yield session
        finally:
            await session.close()
