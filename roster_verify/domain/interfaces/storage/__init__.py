"""Storage interfaces package."""
from .repositories import AbstractUnitOfWork, GroupRepository, SubjectRepository

__all__ = ["AbstractUnitOfWork", "GroupRepository", "SubjectRepository"]
