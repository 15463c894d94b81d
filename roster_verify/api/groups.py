"""Group reference set API endpoints."""
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from roster_verify.api.models.groups import (
    ReferenceStatusResponse,
    RegenerateReferencesRequest,
    StoreReferencesRequest,
)
from roster_verify.core.exceptions import (
    DimensionMismatchError,
    GroupNotFoundError,
    ImageTooLargeError,
    InvalidEmbeddingError,
    InvalidImageError,
    PersistenceError,
)
from roster_verify.core.logging import get_logger
from roster_verify.core.utils.image import decode_data_url
from roster_verify.domain.interfaces.storage.repositories import AbstractUnitOfWork
from roster_verify.infrastructure.database.dependencies import get_uow
from roster_verify.infrastructure.dependencies import (
    ReferenceRegenerator,
    get_reference_regenerator,
    get_reference_set_service,
)
from roster_verify.services.reference_sets import ReferenceSetService

logger = get_logger(__name__)
router = APIRouter(
    tags=["groups"],
    responses={
        404: {"description": "Group not found"},
        500: {"description": "Internal server error"}
    }
)


@router.get(
    "/{group_id}/references",
    response_model=ReferenceStatusResponse,
    summary="Get reference set status",
)
async def get_references(
    group_id: uuid.UUID,
    service: ReferenceSetService = Depends(get_reference_set_service)
) -> ReferenceStatusResponse:
    """Return the group's reference status and descriptor count."""
    try:
        group = await service.get_group(group_id)
        return ReferenceStatusResponse.from_group(group)
    except GroupNotFoundError:
        raise HTTPException(status_code=404, detail="Group not found")
    except PersistenceError as e:
        logger.error("Failed to load group", group_id=str(group_id), error=str(e))
        raise HTTPException(status_code=500, detail="Failed to load group")


@router.post(
    "/{group_id}/references",
    response_model=ReferenceStatusResponse,
    summary="Store group reference descriptors",
    description="Replaces the group's reference set with client-computed descriptors.",
)
async def store_references(
    group_id: uuid.UUID,
    request: StoreReferencesRequest,
    service: ReferenceSetService = Depends(get_reference_set_service)
) -> ReferenceStatusResponse:
    """Replace the group's reference set.

    An empty descriptor list leaves the group in the ``error`` state.
    """
    try:
        group = await service.store_references(group_id, request.descriptors)
        return ReferenceStatusResponse.from_group(group)
    except GroupNotFoundError:
        raise HTTPException(status_code=404, detail="Group not found")
    except (DimensionMismatchError, InvalidEmbeddingError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceError as e:
        logger.error("Failed to store group references", group_id=str(group_id), error=str(e))
        raise HTTPException(status_code=500, detail="Failed to store group references")


@router.post(
    "/{group_id}/regenerate-references",
    response_model=ReferenceStatusResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Regenerate references from a group photo",
    description=(
        "Marks the reference set as processing and extracts the faces of the "
        "group photo in the background. Poll the reference status for the result."
    ),
)
async def regenerate_references(
    group_id: uuid.UUID,
    request: RegenerateReferencesRequest,
    background_tasks: BackgroundTasks,
    uow: AbstractUnitOfWork = Depends(get_uow),
    service: ReferenceSetService = Depends(get_reference_set_service),
    regenerate: ReferenceRegenerator = Depends(get_reference_regenerator),
) -> ReferenceStatusResponse:
    """Start a background regeneration of the group's reference set.

    Raises:
        HTTPException: If the photo is invalid or the group does not exist
    """
    try:
        image_bytes = decode_data_url(request.group_photo)
        group = await service.begin_regeneration(group_id)
        # The processing status must be visible before the background run starts
        await uow.commit()
    except (InvalidImageError, ImageTooLargeError) as e:
        logger.warning("Invalid group photo", group_id=str(group_id), error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    except GroupNotFoundError:
        raise HTTPException(status_code=404, detail="Group not found")
    except PersistenceError as e:
        logger.error("Failed to start reference regeneration", group_id=str(group_id), error=str(e))
        raise HTTPException(status_code=500, detail="Failed to start reference regeneration")

    background_tasks.add_task(regenerate, group_id, image_bytes)
    logger.info("Scheduled reference regeneration", group_id=str(group_id))
    return ReferenceStatusResponse.from_group(group)
