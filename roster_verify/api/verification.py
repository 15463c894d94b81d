"""Face verification API endpoints."""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from roster_verify.api.models.verification import (
    BatchVerificationRequest,
    BatchVerificationResponse,
    BatchVerificationResult,
    VerificationHealthResponse,
    VerificationRequest,
    VerificationResponse,
)
from roster_verify.core.config import settings
from roster_verify.core.exceptions import (
    DimensionMismatchError,
    GroupNotFoundError,
    ImageTooLargeError,
    InvalidDayError,
    InvalidEmbeddingError,
    InvalidImageError,
    InvalidThresholdError,
    PersistenceError,
    ProviderUnavailableError,
    SubjectNotFoundError,
)
from roster_verify.core.logging import get_logger
from roster_verify.core.utils.image import decode_data_url
from roster_verify.domain.interfaces.recognition.embedding_provider import EmbeddingProvider
from roster_verify.infrastructure.dependencies import get_embedding_provider, get_verification_service
from roster_verify.services.verification import VerificationService

logger = get_logger(__name__)
router = APIRouter(
    tags=["verification"],
    responses={
        400: {"description": "Invalid request"},
        404: {"description": "Subject or group not found"},
        503: {"description": "Face recognition temporarily unavailable"},
        500: {"description": "Internal server error"}
    }
)

SERVICE_UNAVAILABLE = "Face verification service is temporarily unavailable. Please try again later."


def _image_bytes(descriptor: Optional[list], captured_image: Optional[str]) -> Optional[bytes]:
    """Decode the captured image only when no descriptor was supplied."""
    if descriptor:
        return None
    return decode_data_url(captured_image)


@router.get(
    "/health",
    response_model=VerificationHealthResponse,
    summary="Verification service health",
)
async def verification_health(
    provider: EmbeddingProvider = Depends(get_embedding_provider)
) -> VerificationHealthResponse:
    """Report whether the embedding provider is loaded and the effective config."""
    return VerificationHealthResponse(
        status="healthy" if provider.is_ready else "degraded",
        provider_ready=provider.is_ready,
        provider_error=getattr(provider, "failure", None),
        threshold=settings.VERIFICATION_THRESHOLD,
        embedding_dimension=settings.EMBEDDING_DIMENSION,
        max_image_size_mb=settings.MAX_IMAGE_BYTES / (1024 * 1024),
        supported_formats=settings.image_formats,
    )


@router.post(
    "/batch",
    response_model=BatchVerificationResponse,
    summary="Verify several subjects",
    description="Verifies each subject independently; a failing entry does not stop the batch.",
)
async def verify_batch(
    request: BatchVerificationRequest,
    service: VerificationService = Depends(get_verification_service)
) -> BatchVerificationResponse:
    """Verify several subjects of one group.

    Args:
        request: Group, scope and per-subject probes
        service: Verification service provided by dependency injection

    Returns:
        BatchVerificationResponse with one result per subject

    Raises:
        HTTPException: If the request is invalid or processing fails
    """
    try:
        items = []
        for entry in request.verifications:
            try:
                image = _image_bytes(entry.descriptor, entry.captured_image)
            except (InvalidImageError, ImageTooLargeError) as e:
                # No image left to read; the service reports no_face_detected without the provider
                logger.warning("Invalid captured image in batch", subject_id=str(entry.subject_id), error=str(e))
                image = None
            items.append((entry.subject_id, entry.descriptor or None, image))

        results = await service.verify_batch(
            group_id=request.group_id,
            items=items,
            threshold=request.threshold,
            day=request.day,
        )
        return BatchVerificationResponse(
            message=f"Processed {len(results)} verifications",
            results=[BatchVerificationResult.from_item(item) for item in results],
        )

    except (InvalidThresholdError, InvalidDayError) as e:
        logger.warning("Invalid batch verification request", error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    except GroupNotFoundError as e:
        logger.warning("Group not found", error=str(e))
        raise HTTPException(status_code=404, detail="Group not found")
    except ProviderUnavailableError as e:
        logger.error("Embedding provider unavailable", error=str(e))
        raise HTTPException(status_code=503, detail=SERVICE_UNAVAILABLE)
    except PersistenceError as e:
        logger.error("Failed to store verification results", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to store verification results")
    except Exception as e:
        logger.error("Unexpected error during batch verification",
                     error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Batch verification failed")


@router.post(
    "/{subject_id}",
    response_model=VerificationResponse,
    summary="Verify a subject",
    description=(
        "Compares a captured face with the subject's personal embedding, or with the "
        "group reference set when the subject has none, and records the verdict."
    ),
    responses={
        200: {
            "description": "Verification attempted",
            "content": {
                "application/json": {
                    "example": {
                        "subject_id": "550e8400-e29b-41d4-a716-446655440000",
                        "outcome": "success",
                        "confidence": 62.5,
                        "distance": 0.375,
                        "threshold": 0.6,
                        "day": 2,
                        "reference_source": "personal",
                        "reference_count": 1,
                        "reference_status": "ready",
                        "message": "Face verification successful. You have been matched."
                    }
                }
            },
        },
    },
)
async def verify_subject(
    subject_id: uuid.UUID,
    request: VerificationRequest,
    service: VerificationService = Depends(get_verification_service)
) -> VerificationResponse:
    """Verify one subject.

    Args:
        subject_id: Subject being verified
        request: Probe, group and optional day/threshold
        service: Verification service provided by dependency injection

    Returns:
        VerificationResponse with the classified outcome

    Raises:
        HTTPException: If the request is invalid or processing fails
    """
    try:
        image = _image_bytes(request.descriptor, request.captured_image)
        outcome = await service.verify(
            subject_id=subject_id,
            group_id=request.group_id,
            probe=request.descriptor or None,
            image=image,
            threshold=request.threshold,
            day=request.day,
        )
        return VerificationResponse.from_outcome(outcome)

    except (InvalidImageError, ImageTooLargeError, InvalidEmbeddingError) as e:
        logger.warning("Invalid captured image or descriptor", error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    except (InvalidThresholdError, InvalidDayError) as e:
        logger.warning("Invalid verification request", error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    except SubjectNotFoundError as e:
        logger.warning("Subject not found", error=str(e))
        raise HTTPException(status_code=404, detail="Subject not found")
    except GroupNotFoundError as e:
        logger.warning("Group not found", error=str(e))
        raise HTTPException(status_code=404, detail="Group not found")
    except ProviderUnavailableError as e:
        logger.error("Embedding provider unavailable", error=str(e), reason=e.details.get("reason"))
        raise HTTPException(status_code=503, detail=SERVICE_UNAVAILABLE)
    except DimensionMismatchError as e:
        logger.error("Embedding dimension mismatch", error=str(e), **e.details)
        raise HTTPException(status_code=500, detail="Reference data does not match the configured embedding size")
    except PersistenceError as e:
        logger.error("Failed to store verification result", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to store verification result")
    except Exception as e:
        logger.error("Unexpected error during face verification",
                     error=str(e), exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred during face verification"
        )
