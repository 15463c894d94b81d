"""Service container for dependency injection."""
from typing import Optional

from roster_verify.core.config import settings
from roster_verify.core.exceptions import ProviderUnavailableError
from roster_verify.core.logging import get_logger
from roster_verify.domain.interfaces.recognition.embedding_provider import EmbeddingProvider
from roster_verify.infrastructure.database.session import create_tables, dispose_engine
from roster_verify.services.recognition.insight_face import InsightFaceEmbeddingProvider

logger = get_logger(__name__)


class ServiceContainer:
    """Container for process-scoped services.

    The embedding provider is created and loaded once here, at startup. A
    failed load does not stop the application: verifications with a supplied
    descriptor keep working, and image-based calls fail with
    ProviderUnavailableError.

    Example:
        ```python
        container = ServiceContainer()
        await container.initialize()

        provider = container.embedding_provider
        ```
    """

    def __init__(self) -> None:
        """Initialize empty container."""
        self.embedding_provider: Optional[EmbeddingProvider] = None
        self.initialized = False

    async def initialize(self) -> None:
        """Initialize all services in the correct order."""
        if settings.DB_AUTO_CREATE:
            await create_tables()

        self.embedding_provider = InsightFaceEmbeddingProvider()
        try:
            await self.embedding_provider.initialize()
        except ProviderUnavailableError as e:
            logger.error(
                "Embedding provider unavailable, image based verification disabled",
                reason=e.details.get("reason"),
            )
        self.initialized = True

    async def cleanup(self) -> None:
        """Cleanup all services in reverse order of initialization."""
        self.embedding_provider = None
        await dispose_engine()
        self.initialized = False


# Global container instance
container = ServiceContainer()
