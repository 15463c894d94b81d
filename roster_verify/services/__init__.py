"""Application services package."""
from .recognition import InsightFaceEmbeddingProvider
from .reference_sets import ReferenceSetService
from .subject_state import SubjectStateService
from .verification import VerificationService

__all__ = [
    "InsightFaceEmbeddingProvider",
    "ReferenceSetService",
    "SubjectStateService",
    "VerificationService",
]
