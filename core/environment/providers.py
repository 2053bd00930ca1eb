from dishka import Provider, Scope, provide
from core.environment.config import Settings


class EnvironmentProvider(Provider):
    """
    Provider for environment configuration.

    Settings are read once per container, so every gateway component
    sees the same RPC endpoints, cache limits and database URL.
    """

    component = "environment"
    scope = Scope.APP

    @provide
    def get_environment(self) -> Settings:
        """
        Provide gateway settings.

        Returns
        -------
        Settings
            Settings loaded from environment and ``.env``
        """
        return Settings()
