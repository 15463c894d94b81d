"""Verification service comparing a captured face with a subject's references."""
import uuid
from typing import List, Optional, Sequence, Tuple

import numpy as np

from roster_verify.core.config import settings
from roster_verify.core.exceptions import (
    DimensionMismatchError,
    InvalidImageError,
    NoFaceDetectedError,
    PersistenceError,
    ProviderUnavailableError,
    ReferenceNotReadyError,
    SubjectNotFoundError,
    VerificationError,
)
from roster_verify.core.logging import get_logger
from roster_verify.domain.entities.embedding import EmbeddingLike, to_embedding
from roster_verify.domain.entities.group import Group
from roster_verify.domain.entities.subject import Subject, validate_day
from roster_verify.domain.interfaces.recognition.embedding_provider import EmbeddingProvider
from roster_verify.domain.interfaces.storage.repositories import AbstractUnitOfWork
from roster_verify.domain.value_objects.verification import (
    BatchItemResult,
    VerificationOutcome,
    VerificationOutcomeKind,
)
from roster_verify.services.matching.resolver import MatchResolver, validate_threshold
from roster_verify.services.reference_policy import select_references

logger = get_logger(__name__)

MESSAGES = {
    VerificationOutcomeKind.SUCCESS: "Face verification successful. You have been matched.",
    VerificationOutcomeKind.FAILED: "Face verification failed.",
    VerificationOutcomeKind.NO_FACE_DETECTED: (
        "No face detected in captured image. Please ensure your face is clearly visible and try again."
    ),
    VerificationOutcomeKind.NO_REFERENCE_AVAILABLE: (
        "No reference faces are available for this subject. Regenerate the group references and try again."
    ),
}


class VerificationService:
    """Service running verification attempts for roster subjects.

    This service:
    1. Obtains the probe embedding (supplied, or extracted from an image)
    2. Selects the subject's personal embedding or the group reference set
    3. Resolves the probe against the references
    4. Writes the verdict to the global scope or one day scope

    Example:
        ```python
        service = VerificationService(uow, embedding_provider)
        outcome = await service.verify(
            subject_id=student_id,
            group_id=school_id,
            probe=descriptor,
            day=3,
        )
        ```
    """

    def __init__(
        self,
        uow: AbstractUnitOfWork,
        embedding_provider: EmbeddingProvider,
        resolver: Optional[MatchResolver] = None,
    ) -> None:
        """Initialize the verification service.

        Args:
            uow: Unit of work giving access to subjects and groups
            embedding_provider: Provider used when the probe is an image
            resolver: Match resolver (defaults to one using VERIFICATION_THRESHOLD)
        """
        self._uow = uow
        self._embedding_provider = embedding_provider
        self._resolver = resolver or MatchResolver()

    async def _probe_from_image(self, image_bytes: bytes) -> np.ndarray:
        """Extract the best face embedding from an image.

        Raises:
            NoFaceDetectedError: If no face is found or the image cannot be processed
            ProviderUnavailableError: If the embedding provider is not available
        """
        try:
            embeddings = await self._embedding_provider.extract_embeddings(image_bytes)
            embedding = next(iter(embeddings), None)
        except (ProviderUnavailableError, DimensionMismatchError):
            raise
        except InvalidImageError as e:
            raise NoFaceDetectedError(
                "No face detected in captured image",
                details={"reason": str(e)},
            ) from e

        if embedding is None:
            raise NoFaceDetectedError("No face detected in captured image")
        return embedding

    async def obtain_probe(
        self,
        probe: Optional[EmbeddingLike] = None,
        image: Optional[bytes] = None,
    ) -> np.ndarray:
        """Return the probe embedding, preferring an explicitly supplied one."""
        if probe is not None:
            return to_embedding(probe)
        if image is None:
            raise NoFaceDetectedError("Captured image or descriptor is required")
        return await self._probe_from_image(image)

    def _outcome(
        self,
        subject: Subject,
        kind: VerificationOutcomeKind,
        threshold: float,
        day: Optional[int],
        **fields,
    ) -> VerificationOutcome:
        return VerificationOutcome(
            subject_id=subject.id,
            outcome=kind,
            threshold=threshold,
            day=day,
            message=MESSAGES[kind],
            **fields,
        )

    async def verify(
        self,
        subject_id: uuid.UUID,
        group_id: uuid.UUID,
        probe: Optional[EmbeddingLike] = None,
        image: Optional[bytes] = None,
        threshold: Optional[float] = None,
        day: Optional[int] = None,
    ) -> VerificationOutcome:
        """Run one verification attempt.

        Args:
            subject_id: Subject being verified
            group_id: Group whose reference set is the fallback
            probe: Probe embedding supplied by the client
            image: Encoded captured image, used when no probe is supplied
            threshold: Match threshold override (defaults to VERIFICATION_THRESHOLD)
            day: Day scope 1..6, or None for the global scope

        Returns:
            VerificationOutcome. ``no_face_detected`` and ``no_reference_available``
            outcomes leave the subject's state untouched.

        Raises:
            InvalidThresholdError: If the threshold is not positive and finite
            InvalidDayError: If the day is outside 1..6
            SubjectNotFoundError / GroupNotFoundError: For unknown ids
            ProviderUnavailableError: If an image was supplied and the provider is down
            DimensionMismatchError: If probe and references disagree on length
        """
        limit = validate_threshold(settings.VERIFICATION_THRESHOLD if threshold is None else threshold)
        if day is not None:
            validate_day(day)

        subject = await self._uow.subjects.get(subject_id)
        group = await self._uow.groups.get(group_id)

        try:
            probe_embedding = await self.obtain_probe(probe, image)
        except NoFaceDetectedError as e:
            logger.warning(
                "No face detected in captured image",
                subject_id=str(subject_id),
                group_id=str(group_id),
                day=day,
                error=str(e),
            )
            return self._outcome(subject, VerificationOutcomeKind.NO_FACE_DETECTED, limit, day)

        return await self._verify_probe(subject, group, probe_embedding, limit, day)

    async def _verify_probe(
        self,
        subject: Subject,
        group: Group,
        probe: np.ndarray,
        threshold: float,
        day: Optional[int],
    ) -> VerificationOutcome:
        try:
            selection = select_references(subject, group)
        except ReferenceNotReadyError as e:
            logger.warning(
                "Group reference set not usable",
                subject_id=str(subject.id),
                group_id=str(group.id),
                reference_status=group.reference_status.value,
                error=str(e),
            )
            return self._outcome(
                subject,
                VerificationOutcomeKind.NO_REFERENCE_AVAILABLE,
                threshold,
                day,
                reference_status=group.reference_status,
            )

        match = self._resolver.resolve(probe, selection.embeddings, threshold)

        if match.best_distance is None:
            logger.warning(
                "No reference embeddings to compare against",
                subject_id=str(subject.id),
                group_id=str(group.id),
                reference_source=selection.source.value,
            )
            return self._outcome(
                subject,
                VerificationOutcomeKind.NO_REFERENCE_AVAILABLE,
                threshold,
                day,
                reference_source=selection.source,
                reference_status=group.reference_status,
            )

        subject.record_verdict(match.matched, match.confidence, day=day)
        await self._uow.subjects.save_verification_state(subject)

        kind = VerificationOutcomeKind.SUCCESS if match.matched else VerificationOutcomeKind.FAILED
        logger.info(
            "Verification attempt",
            subject_id=str(subject.id),
            group_id=str(group.id),
            scope=f"day{day}" if day is not None else "global",
            outcome=kind.value,
            confidence=round(match.confidence, 2),
            distance=match.best_distance,
            threshold=threshold,
            reference_source=selection.source.value,
        )

        return self._outcome(
            subject,
            kind,
            threshold,
            day,
            confidence=match.confidence,
            distance=match.best_distance,
            reference_source=selection.source,
            reference_count=len(selection.embeddings),
            reference_status=group.reference_status,
        )

    async def verify_batch(
        self,
        group_id: uuid.UUID,
        items: Sequence[Tuple[uuid.UUID, Optional[EmbeddingLike], Optional[bytes]]],
        threshold: Optional[float] = None,
        day: Optional[int] = None,
    ) -> List[BatchItemResult]:
        """Verify several subjects of one group; one bad entry never aborts the rest.

        Args:
            group_id: Group shared by all entries
            items: ``(subject_id, probe, image)`` triples
            threshold: Match threshold override for every entry
            day: Day scope for every entry

        Returns:
            One BatchItemResult per entry, in input order

        Raises:
            InvalidThresholdError / InvalidDayError: Before any entry is processed
            GroupNotFoundError: If the group does not exist
            ProviderUnavailableError: If an entry needs the provider and it is down
            PersistenceError: If a verdict cannot be stored
        """
        limit = validate_threshold(settings.VERIFICATION_THRESHOLD if threshold is None else threshold)
        if day is not None:
            validate_day(day)
        await self._uow.groups.get(group_id)

        results: List[BatchItemResult] = []
        for subject_id, probe, image in items:
            try:
                outcome = await self.verify(
                    subject_id=subject_id,
                    group_id=group_id,
                    probe=probe,
                    image=image,
                    threshold=limit,
                    day=day,
                )
                results.append(BatchItemResult(subject_id=subject_id, outcome=outcome))
            except SubjectNotFoundError as e:
                logger.warning("Batch subject not found", subject_id=str(subject_id), group_id=str(group_id))
                results.append(BatchItemResult(subject_id=subject_id, error=str(e)))
            except (ProviderUnavailableError, PersistenceError):
                raise
            except VerificationError as e:
                logger.warning(
                    "Batch verification entry failed",
                    subject_id=str(subject_id),
                    group_id=str(group_id),
                    error=str(e),
                )
                results.append(BatchItemResult(subject_id=subject_id, error=str(e)))

        logger.info(
            "Batch verification completed",
            group_id=str(group_id),
            requested=len(items),
            matched=sum(1 for r in results if r.outcome is not None and r.outcome.matched),
        )
        return results

    async def capture_personal_embedding(
        self,
        subject_id: uuid.UUID,
        probe: Optional[EmbeddingLike] = None,
        image: Optional[bytes] = None,
    ) -> Subject:
        """Store a subject-specific descriptor (typically from the day 1 photo).

        From then on the descriptor is the only reference used for the subject.

        Raises:
            SubjectNotFoundError: If the subject does not exist
            NoFaceDetectedError: If the image contains no usable face
            ProviderUnavailableError: If an image was supplied and the provider is down
        """
        subject = await self._uow.subjects.get(subject_id)
        subject.personal_embedding = await self.obtain_probe(probe, image)
        await self._uow.subjects.save_personal_embedding(subject)

        logger.info("Stored personal embedding", subject_id=str(subject_id))
        return subject
