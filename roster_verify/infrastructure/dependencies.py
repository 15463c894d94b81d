"""FastAPI dependency providers."""
import uuid
from typing import AsyncGenerator, Awaitable, Callable

from fastapi import Depends

from roster_verify.core.container import ServiceContainer, container
from roster_verify.core.exceptions import ServiceNotInitializedError
from roster_verify.core.logging import get_logger
from roster_verify.domain.interfaces.recognition.embedding_provider import EmbeddingProvider
from roster_verify.domain.interfaces.storage.repositories import AbstractUnitOfWork
from roster_verify.infrastructure.database.dependencies import get_uow
from roster_verify.infrastructure.database.session import get_db_session
from roster_verify.infrastructure.database.unit_of_work import UnitOfWork
from roster_verify.services.reference_sets import ReferenceSetService
from roster_verify.services.subject_state import SubjectStateService
from roster_verify.services.verification import VerificationService

logger = get_logger(__name__)

ReferenceRegenerator = Callable[[uuid.UUID, bytes], Awaitable[None]]


async def get_container() -> ServiceContainer:
    """Dependency provider for the global ServiceContainer instance."""
    if not container.initialized:
        try:
            await container.initialize()
        except Exception as e:
            raise ServiceNotInitializedError(f"Service container could not be initialized: {e}")
    return container


async def get_embedding_provider(
    cont: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[EmbeddingProvider, None]:
    """Provide the process-wide embedding provider.

    Yields:
        EmbeddingProvider: Provider, possibly in its unavailable state

    Raises:
        ServiceNotInitializedError: If the provider was never created
    """
    if cont.embedding_provider is None:
        raise ServiceNotInitializedError("Embedding provider not initialized")
    yield cont.embedding_provider


async def get_verification_service(
    uow: AbstractUnitOfWork = Depends(get_uow),
    provider: EmbeddingProvider = Depends(get_embedding_provider),
) -> AsyncGenerator[VerificationService, None]:
    """Provide the verification service bound to the request's unit of work."""
    yield VerificationService(uow=uow, embedding_provider=provider)


async def get_subject_state_service(
    uow: AbstractUnitOfWork = Depends(get_uow),
) -> AsyncGenerator[SubjectStateService, None]:
    """Provide the subject state service bound to the request's unit of work."""
    yield SubjectStateService(uow=uow)


async def get_reference_set_service(
    uow: AbstractUnitOfWork = Depends(get_uow),
    provider: EmbeddingProvider = Depends(get_embedding_provider),
) -> AsyncGenerator[ReferenceSetService, None]:
    """Provide the reference set service bound to the request's unit of work."""
    yield ReferenceSetService(uow=uow, embedding_provider=provider)


async def get_reference_regenerator(
    provider: EmbeddingProvider = Depends(get_embedding_provider),
) -> ReferenceRegenerator:
    """Provide the coroutine that rebuilds a group's references in the background.

    The request's unit of work is closed by the time a background task runs,
    so each run opens its own session and unit of work.
    """

    async def regenerate(group_id: uuid.UUID, image_bytes: bytes) -> None:
        try:
            async with get_db_session() as session:
                async with UnitOfWork(session) as uow:
                    service = ReferenceSetService(uow=uow, embedding_provider=provider)
                    await service.regenerate_from_image(group_id, image_bytes)
        except Exception as e:
            logger.error(
                "Background reference regeneration failed",
                group_id=str(group_id),
                error=str(e),
                exc_info=True,
            )

    return regenerate
