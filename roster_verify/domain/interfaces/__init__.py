"""Service interfaces package."""
from .recognition import EmbeddingProvider
from .storage import AbstractUnitOfWork, GroupRepository, SubjectRepository

__all__ = ["AbstractUnitOfWork", "EmbeddingProvider", "GroupRepository", "SubjectRepository"]
