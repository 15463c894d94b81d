"""Shared fixtures: in-memory repositories, a fake embedding provider and embedding factories."""
import base64
import uuid
from typing import Dict, Iterator, List, Optional, Sequence

import httpx
import numpy as np
import pytest

from roster_verify.core.config import settings
from roster_verify.core.exceptions import (
    GroupNotFoundError,
    InvalidImageError,
    ProviderUnavailableError,
    SubjectNotFoundError,
)
from roster_verify.domain.entities.group import Group
from roster_verify.domain.entities.subject import Subject
from roster_verify.domain.interfaces.recognition.embedding_provider import EmbeddingProvider
from roster_verify.domain.interfaces.storage.repositories import (
    AbstractUnitOfWork,
    GroupRepository,
    SubjectRepository,
)
from roster_verify.domain.value_objects.verification import ReferenceStatus
from roster_verify.infrastructure.database.dependencies import get_uow
from roster_verify.infrastructure.dependencies import get_embedding_provider, get_reference_regenerator
from roster_verify.main import app
from roster_verify.services.reference_sets import ReferenceSetService

UNREADABLE_IMAGE = b"not an image"

API = settings.API_V1_STR
JPEG_DATA_URL = "data:image/jpeg;base64," + base64.b64encode(b"jpeg-bytes").decode()


def embedding_at(distance: float, axis: int = 0) -> List[float]:
    """Embedding lying exactly ``distance`` away from the all-zero embedding."""
    values = [0.0] * settings.EMBEDDING_DIMENSION
    values[axis] = distance
    return values


class InMemoryGroupRepository(GroupRepository):
    def __init__(self) -> None:
        self.items: Dict[uuid.UUID, Group] = {}

    async def get(self, group_id: uuid.UUID) -> Group:
        if group_id not in self.items:
            raise GroupNotFoundError(f"Group not found: {group_id}")
        return self.items[group_id].model_copy(deep=True)

    async def add(self, group: Group) -> Group:
        self.items[group.id] = group.model_copy(deep=True)
        return group

    async def save_references(self, group: Group) -> None:
        if group.id not in self.items:
            raise GroupNotFoundError(f"Group not found: {group.id}")
        self.items[group.id] = group.model_copy(deep=True)


class InMemorySubjectRepository(SubjectRepository):
    def __init__(self) -> None:
        self.items: Dict[uuid.UUID, Subject] = {}
        self.saves = 0

    async def get(self, subject_id: uuid.UUID) -> Subject:
        if subject_id not in self.items:
            raise SubjectNotFoundError(f"Subject not found: {subject_id}")
        return self.items[subject_id].model_copy(deep=True)

    async def get_many(self, subject_ids: Sequence[uuid.UUID]) -> List[Subject]:
        return [self.items[i].model_copy(deep=True) for i in subject_ids if i in self.items]

    async def add(self, subject: Subject) -> Subject:
        self.items[subject.id] = subject.model_copy(deep=True)
        return subject

    async def save_verification_state(self, subject: Subject) -> None:
        self.saves += 1
        self.items[subject.id] = subject.model_copy(deep=True)

    async def save_personal_embedding(self, subject: Subject) -> None:
        self.items[subject.id] = subject.model_copy(deep=True)

    async def delete(self, subject_id: uuid.UUID) -> None:
        if subject_id not in self.items:
            raise SubjectNotFoundError(f"Subject not found: {subject_id}")
        del self.items[subject_id]


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self) -> None:
        self.groups = InMemoryGroupRepository()
        self.subjects = InMemorySubjectRepository()
        self.commits = 0
        self.rollbacks = 0

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


class FakeEmbeddingProvider(EmbeddingProvider):
    """Returns preset embeddings instead of running a model."""

    def __init__(self, faces: Optional[Sequence[Sequence[float]]] = None, failure: Optional[str] = None) -> None:
        self.faces = [np.asarray(face, dtype=np.float64) for face in (faces or [])]
        self.failure = failure
        self.calls = 0

    @property
    def is_ready(self) -> bool:
        return self.failure is None

    async def initialize(self) -> None:
        if self.failure is not None:
            raise ProviderUnavailableError("Embedding provider is unavailable", details={"reason": self.failure})

    async def extract_embeddings(self, image_bytes: bytes) -> Iterator[np.ndarray]:
        self.calls += 1
        await self.initialize()
        if not image_bytes or image_bytes == UNREADABLE_IMAGE:
            raise InvalidImageError("Failed to decode image bytes")
        return iter(list(self.faces))


@pytest.fixture
def uow() -> FakeUnitOfWork:
    """Provide an empty in-memory unit of work."""
    return FakeUnitOfWork()


@pytest.fixture
def provider() -> FakeEmbeddingProvider:
    """Provide a provider that detects one face at the origin."""
    return FakeEmbeddingProvider(faces=[embedding_at(0.0)])


@pytest.fixture
async def group(uow: FakeUnitOfWork) -> Group:
    """A group whose reference set holds faces 0.3 and 0.8 away from the origin."""
    group = Group(name="Greenfield School")
    group.mark_ready([embedding_at(0.3), embedding_at(0.8, axis=1)])
    await uow.groups.add(group)
    return group


@pytest.fixture
async def subject(uow: FakeUnitOfWork, group: Group) -> Subject:
    """A pending subject without a personal embedding."""
    subject = Subject(group_id=group.id, name="Asha Rao", roll_number="12")
    await uow.subjects.add(subject)
    return subject


@pytest.fixture
async def processing_group(uow: FakeUnitOfWork) -> Group:
    """A group whose reference set is being regenerated."""
    group = Group(name="Hillside School", reference_status=ReferenceStatus.PROCESSING)
    await uow.groups.add(group)
    return group


@pytest.fixture
async def client(uow: FakeUnitOfWork, provider: FakeEmbeddingProvider):
    """HTTP client with the unit of work and provider replaced by fakes."""

    async def regenerate(group_id, image_bytes):
        await ReferenceSetService(uow, provider).regenerate_from_image(group_id, image_bytes)

    app.dependency_overrides[get_uow] = lambda: uow
    app.dependency_overrides[get_embedding_provider] = lambda: provider
    app.dependency_overrides[get_reference_regenerator] = lambda: regenerate

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()
