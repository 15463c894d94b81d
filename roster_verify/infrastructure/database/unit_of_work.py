"""Unit of work pattern implementation."""
from types import TracebackType
from typing import Optional, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from roster_verify.core.exceptions import PersistenceError
from roster_verify.domain.interfaces.storage.repositories import AbstractUnitOfWork
from roster_verify.infrastructure.database.repositories import SqlGroupRepository, SqlSubjectRepository


class UnitOfWork(AbstractUnitOfWork):
    """Unit of work for managing database transactions and repositories."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize unit of work.

        Args:
            session: Database session
        """
        self._session = session
        self.groups = SqlGroupRepository(session)
        self.subjects = SqlSubjectRepository(session)

    async def __aenter__(self) -> "UnitOfWork":
        """Enter async context manager.

        Returns:
            UnitOfWork: Self
        """
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        """Commit on success, roll back if the block raised."""
        if exc_type is not None:
            await self.rollback()
        else:
            await self.commit()

    async def commit(self) -> None:
        """Commit the current transaction."""
        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise PersistenceError(f"Failed to commit transaction: {str(e)}") from e

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        await self._session.rollback()
