import logging
import sys
from typing import Annotated

from dishka import Provider, provide, Scope, FromComponent

from core.environment.config import Settings

LOGGER_NAME = "wallet_gateway"


class LoggerProvider(Provider):
    """
    Provider for logging configuration and logger instances.

    Configures logging to output to console (stdout) with the level from settings.
    """
    component = "logger"

    @provide(scope=Scope.APP)
    def get_logger(
        self,
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> logging.Logger:
        """
        Provide configured logger instance.

        Parameters
        ----------
        settings : Settings
            Application settings

        Returns
        -------
        logging.Logger
            Configured logger that writes to console
        """
        if not logging.getLogger().handlers:
            logging.basicConfig(
                level=settings.log_level.upper(),
                format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                handlers=[
                    logging.StreamHandler(sys.stdout)
                ]
            )

        return logging.getLogger(LOGGER_NAME)
