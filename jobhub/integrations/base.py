from abc import ABC, abstractmethod

from jobhub.common.logging import get_logger


class BaseIntegration(ABC):
    """Base class for external service clients.

    Gives each client a logger under ``jobhub.integrations.<name>`` and a
    health check the liveness endpoint can call.
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = get_logger(f"integrations.{name}")

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the integration is reachable."""
        ...
