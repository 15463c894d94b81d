"""Repository interfaces for subject and group persistence."""
import uuid
from abc import ABC, abstractmethod
from typing import List, Sequence

from ...entities.group import Group
from ...entities.subject import Subject


class GroupRepository(ABC):
    """Interface for reading and writing groups."""

    @abstractmethod
    async def get(self, group_id: uuid.UUID) -> Group:
        """
        Get a group by id.

        Raises:
            GroupNotFoundError: If the group does not exist
        """
        pass

    @abstractmethod
    async def add(self, group: Group) -> Group:
        """Persist a new group."""
        pass

    @abstractmethod
    async def save_references(self, group: Group) -> None:
        """
        Write reference_set, reference_status, reference_error and
        reference_updated_at together as one unit.
        """
        pass


class SubjectRepository(ABC):
    """Interface for reading and writing subjects."""

    @abstractmethod
    async def get(self, subject_id: uuid.UUID) -> Subject:
        """
        Get a subject by id, including all verification scopes.

        Raises:
            SubjectNotFoundError: If the subject does not exist
        """
        pass

    @abstractmethod
    async def get_many(self, subject_ids: Sequence[uuid.UUID]) -> List[Subject]:
        """Get the subjects that exist among ``subject_ids``."""
        pass

    @abstractmethod
    async def add(self, subject: Subject) -> Subject:
        """Persist a new subject with all scopes pending."""
        pass

    @abstractmethod
    async def save_verification_state(self, subject: Subject) -> None:
        """Write the global and per-day verification scopes."""
        pass

    @abstractmethod
    async def save_personal_embedding(self, subject: Subject) -> None:
        """Write the subject-specific descriptor."""
        pass

    @abstractmethod
    async def delete(self, subject_id: uuid.UUID) -> None:
        """
        Delete a subject and all of its verification state.

        Raises:
            SubjectNotFoundError: If the subject does not exist
        """
        pass


class AbstractUnitOfWork(ABC):
    """Transaction boundary exposing the repositories."""

    groups: GroupRepository
    subjects: SubjectRepository

    @abstractmethod
    async def commit(self) -> None:
        """Commit the current transaction."""
        pass

    @abstractmethod
    async def rollback(self) -> None:
        """Rollback the current transaction."""
        pass
