import logging

from config import get_api
from etl.errors import AuthenticationError

logger = logging.getLogger(__name__)


class GraphSession:
    """Guarda no máximo uma conexão ativa com o Graph."""

    def __init__(self, connector=get_api):
        self._connector = connector
        self.api = None

    @property
    def is_active(self) -> bool:
        return self.api is not None and self.api.is_connected

    def connect(self, strategy):
        if self.is_active:
            logger.info("An active session exists; disconnecting it first")
            try:
                self.api.disconnect()
            except Exception as exc:
                logger.warning("Could not close the previous session: %s", exc)
            self.api = None

        logger.info("Connecting to Microsoft Graph with %s", strategy.describe())
        try:
            self.api = self._connector(strategy)
        except AuthenticationError:
            logger.error("Authentication failed", exc_info=True)
            raise
        except Exception as exc:
            logger.error("Authentication failed", exc_info=True)
            raise AuthenticationError(f"Could not connect to Microsoft Graph: {exc}") from exc

        logger.info("Connected to Microsoft Graph: %s", self.api.context())
        return self.api

    def disconnect(self) -> None:
        logger.info("Disconnecting from Microsoft Graph")
        if self.api is None:
            return
        try:
            self.api.disconnect()
        except Exception as exc:
            logger.warning("Disconnect failed: %s", exc)
        finally:
            self.api = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.disconnect()
        return False
