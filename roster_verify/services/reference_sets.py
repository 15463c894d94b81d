"""Reference set service for storing and regenerating group embeddings."""
import uuid
from typing import Sequence

from roster_verify.core.exceptions import VerificationError
from roster_verify.core.logging import get_logger
from roster_verify.domain.entities.embedding import EmbeddingLike, to_embedding
from roster_verify.domain.entities.group import Group
from roster_verify.domain.interfaces.recognition.embedding_provider import EmbeddingProvider
from roster_verify.domain.interfaces.storage.repositories import AbstractUnitOfWork

logger = get_logger(__name__)

NO_FACES_IN_GROUP_PHOTO = "No faces detected in group photo"


class ReferenceSetService:
    """Service maintaining a group's shared reference set.

    Regeneration is modelled as overwrite: every run writes the same
    reference fields, so a newer run supersedes an older one still in flight.

    Example:
        ```python
        service = ReferenceSetService(uow, embedding_provider)
        await service.begin_regeneration(group_id)
        # ... later, in a background task with its own unit of work
        await service.regenerate_from_image(group_id, photo_bytes)
        ```
    """

    def __init__(self, uow: AbstractUnitOfWork, embedding_provider: EmbeddingProvider) -> None:
        """Initialize the reference set service.

        Args:
            uow: Unit of work giving access to groups
            embedding_provider: Provider used to extract embeddings from a group photo
        """
        self._uow = uow
        self._embedding_provider = embedding_provider

    async def get_group(self, group_id: uuid.UUID) -> Group:
        """Get a group with its reference status."""
        return await self._uow.groups.get(group_id)

    async def begin_regeneration(self, group_id: uuid.UUID) -> Group:
        """Mark the group's reference set as processing.

        Until a new set is stored, verification attempts relying on the group
        set return ``no_reference_available`` instead of waiting.
        """
        group = await self._uow.groups.get(group_id)
        group.mark_processing()
        await self._uow.groups.save_references(group)

        logger.info("Reference regeneration started", group_id=str(group_id))
        return group

    async def store_references(self, group_id: uuid.UUID, embeddings: Sequence[EmbeddingLike]) -> Group:
        """Replace the group's reference set.

        An empty set is stored as an ``error`` status because a ready set must
        never be empty.

        Raises:
            GroupNotFoundError: If the group does not exist
            DimensionMismatchError: If any embedding has the wrong length
        """
        converted = [to_embedding(embedding) for embedding in embeddings]
        group = await self._uow.groups.get(group_id)

        if converted:
            group.mark_ready(converted)
        else:
            group.mark_error(NO_FACES_IN_GROUP_PHOTO)
        await self._uow.groups.save_references(group)

        logger.info(
            "Stored group reference set",
            group_id=str(group_id),
            reference_status=group.reference_status.value,
            references_count=len(converted),
        )
        return group

    async def regenerate_from_image(self, group_id: uuid.UUID, image_bytes: bytes) -> Group:
        """Extract embeddings from a group photo and store them.

        Any extraction failure is recorded on the group as an ``error`` status
        instead of being raised, so the set never stays ``processing``.
        """
        try:
            embeddings = [
                to_embedding(embedding)
                for embedding in await self._embedding_provider.extract_embeddings(image_bytes)
            ]
        except Exception as e:
            logger.error(
                "Reference regeneration failed",
                group_id=str(group_id),
                error=str(e),
                error_type=type(e).__name__,
                exc_info=not isinstance(e, VerificationError),
            )
            group = await self._uow.groups.get(group_id)
            group.mark_error(str(e) or type(e).__name__)
            await self._uow.groups.save_references(group)
            return group

        return await self.store_references(group_id, embeddings)
