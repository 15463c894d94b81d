"""Database dependencies for FastAPI."""
from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from roster_verify.domain.interfaces.storage.repositories import AbstractUnitOfWork
from roster_verify.infrastructure.database.session import get_db_session
from roster_verify.infrastructure.database.unit_of_work import UnitOfWork


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session.

    Yields:
        AsyncSession: Database session
    """
    async with get_db_session() as session:
        yield session


async def get_uow(
    session: AsyncSession = Depends(get_session)
) -> AsyncGenerator[AbstractUnitOfWork, None]:
    """Get unit of work.

    Args:
        session: Database session

    Yields:
        AbstractUnitOfWork: Unit of work committing when the request succeeds
    """
    async with UnitOfWork(session) as uow:
        yield uow
