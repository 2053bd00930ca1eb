from typing import Annotated

from dishka import Provider, Scope, provide, FromComponent

from core.environment.config import Settings
from networks.registry import NetworkRegistry


class NetworkProvider(Provider):
    """
    Provider for the network registry.
    """

    component = "networks"
    scope = Scope.APP

    @provide(scope=Scope.APP)
    def get_network_registry(
        self,
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> NetworkRegistry:
        """
        Provide the registry populated once at startup.

        Parameters
        ----------
        settings : Settings
            Application settings

        Returns
        -------
        NetworkRegistry
            Registry of supported networks
        """
        return NetworkRegistry.from_settings(settings)
