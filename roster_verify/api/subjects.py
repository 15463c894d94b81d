"""Subject verification state API endpoints."""
import uuid

from fastapi import APIRouter, Depends, HTTPException

from roster_verify.api.models.subjects import (
    BulkActionRequest,
    BulkActionResponse,
    DeleteSubjectResponse,
    ManualVerifyRequest,
    PersonalEmbeddingRequest,
    ResetVerificationRequest,
    SubjectStateResponse,
    SubjectVerificationState,
)
from roster_verify.core.exceptions import (
    DimensionMismatchError,
    ImageTooLargeError,
    InvalidDayError,
    InvalidEmbeddingError,
    InvalidImageError,
    NoFaceDetectedError,
    PersistenceError,
    ProviderUnavailableError,
    StateTransitionError,
    SubjectNotFoundError,
)
from roster_verify.core.logging import get_logger
from roster_verify.core.utils.image import decode_data_url
from roster_verify.infrastructure.dependencies import get_subject_state_service, get_verification_service
from roster_verify.services.subject_state import SubjectStateService
from roster_verify.services.verification import VerificationService

logger = get_logger(__name__)
router = APIRouter(
    tags=["subjects"],
    responses={
        404: {"description": "Subject not found"},
        409: {"description": "Subject already in the requested state"},
        500: {"description": "Internal server error"}
    }
)


def _conflict(e: StateTransitionError) -> HTTPException:
    return HTTPException(status_code=409, detail={"message": str(e), **e.details})


@router.post(
    "/bulk-actions",
    response_model=BulkActionResponse,
    summary="Manually verify or reset many subjects",
    description="Subjects already in the target state are skipped; the others are updated.",
)
async def bulk_action(
    request: BulkActionRequest,
    service: SubjectStateService = Depends(get_subject_state_service)
) -> BulkActionResponse:
    try:
        result = await service.bulk_action(
            action=request.action,
            subject_ids=request.subject_ids,
            day=request.day,
            reason=request.reason,
        )
        return BulkActionResponse.from_service_response(result)
    except InvalidDayError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceError as e:
        logger.error("Bulk action failed", action=request.action.value, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to process bulk action")


@router.post(
    "/{subject_id}/manual-verify",
    response_model=SubjectStateResponse,
    summary="Manually verify a subject",
)
async def manual_verify(
    subject_id: uuid.UUID,
    request: ManualVerifyRequest,
    service: SubjectStateService = Depends(get_subject_state_service)
) -> SubjectStateResponse:
    """Operator override marking the global or one day scope as verified.

    Raises:
        HTTPException: 409 with the current state if the scope is already manually verified
    """
    try:
        subject = await service.manually_verify(
            subject_id=subject_id,
            day=request.day,
            reason=request.reason,
            notes=request.notes,
        )
        return SubjectStateResponse(
            message="Subject manually verified successfully",
            subject=SubjectVerificationState.from_subject(subject),
        )
    except StateTransitionError as e:
        raise _conflict(e)
    except InvalidDayError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SubjectNotFoundError:
        raise HTTPException(status_code=404, detail="Subject not found")
    except PersistenceError as e:
        logger.error("Manual verification failed", subject_id=str(subject_id), error=str(e))
        raise HTTPException(status_code=500, detail="Failed to manually verify subject")


@router.post(
    "/{subject_id}/reset-verification",
    response_model=SubjectStateResponse,
    summary="Reset a subject to pending",
)
async def reset_verification(
    subject_id: uuid.UUID,
    request: ResetVerificationRequest,
    service: SubjectStateService = Depends(get_subject_state_service)
) -> SubjectStateResponse:
    """Return the global or one day scope to pending so it can be retried.

    Raises:
        HTTPException: 409 with the current state if the scope is already pending
    """
    try:
        subject, previous = await service.reset_verification(
            subject_id=subject_id,
            day=request.day,
            reason=request.reason,
        )
        return SubjectStateResponse(
            message="Verification status reset successfully",
            subject=SubjectVerificationState.from_subject(subject),
            previous_status=previous,
        )
    except StateTransitionError as e:
        raise _conflict(e)
    except InvalidDayError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SubjectNotFoundError:
        raise HTTPException(status_code=404, detail="Subject not found")
    except PersistenceError as e:
        logger.error("Verification reset failed", subject_id=str(subject_id), error=str(e))
        raise HTTPException(status_code=500, detail="Failed to reset verification")


@router.put(
    "/{subject_id}/personal-embedding",
    response_model=SubjectStateResponse,
    summary="Store a subject's personal embedding",
    description=(
        "Stores the subject's own descriptor. Once set, it is the only reference "
        "used to verify the subject."
    ),
)
async def store_personal_embedding(
    subject_id: uuid.UUID,
    request: PersonalEmbeddingRequest,
    service: VerificationService = Depends(get_verification_service)
) -> SubjectStateResponse:
    try:
        image = None if request.descriptor else decode_data_url(request.captured_image)
        subject = await service.capture_personal_embedding(
            subject_id=subject_id,
            probe=request.descriptor or None,
            image=image,
        )
        return SubjectStateResponse(
            message="Personal embedding stored",
            subject=SubjectVerificationState.from_subject(subject),
        )
    except (InvalidImageError, ImageTooLargeError, NoFaceDetectedError, InvalidEmbeddingError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SubjectNotFoundError:
        raise HTTPException(status_code=404, detail="Subject not found")
    except ProviderUnavailableError as e:
        logger.error("Embedding provider unavailable", error=str(e))
        raise HTTPException(
            status_code=503,
            detail="Face verification service is temporarily unavailable. Please try again later."
        )
    except DimensionMismatchError as e:
        logger.error("Embedding dimension mismatch", subject_id=str(subject_id), error=str(e), **e.details)
        raise HTTPException(status_code=500, detail="Extracted embedding does not match the configured embedding size")
    except PersistenceError as e:
        logger.error("Failed to store personal embedding", subject_id=str(subject_id), error=str(e))
        raise HTTPException(status_code=500, detail="Failed to store personal embedding")


@router.delete(
    "/{subject_id}",
    response_model=DeleteSubjectResponse,
    summary="Delete a subject",
)
async def delete_subject(
    subject_id: uuid.UUID,
    service: SubjectStateService = Depends(get_subject_state_service)
) -> DeleteSubjectResponse:
    """Delete a subject and all of its verification state."""
    try:
        subject = await service.remove_subject(subject_id)
        return DeleteSubjectResponse(
            message="Subject deleted successfully",
            subject_id=subject.id,
            name=subject.name,
            roll_number=subject.roll_number,
        )
    except SubjectNotFoundError:
        raise HTTPException(status_code=404, detail="Subject not found")
    except PersistenceError as e:
        logger.error("Failed to delete subject", subject_id=str(subject_id), error=str(e))
        raise HTTPException(status_code=500, detail="Failed to delete subject")
