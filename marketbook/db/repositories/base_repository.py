"""
Base repository - generic async data access shared by every model.
Keeps queries in one place; services depend on repositories, not on the session.
"""

from typing import Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketbook.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Generic async repository. Subclasses define model-specific methods."""

    def __init__(self, session: AsyncSession, model: type[ModelType]):
        self.session = session
        self.model = model

    async def get_by_id(self, id: int) -> ModelType | None:
        """Fetch single entity by primary key."""
        result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def get_many(
        self,
        *,
        skip: int = 0,
        limit: int = 20,
    ) -> list[ModelType]:
        """Paginated list, newest first."""
        result = await self.session.execute(
            select(self.model)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(self.model))
        return result.scalar_one()

    async def save(self, entity: ModelType) -> ModelType:
        """Flush pending changes on a loaded entity and reload server state."""
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def delete(self, entity: ModelType) -> None:
        """Remove entity from DB."""
        await self.session.delete(entity)
        await self.session.flush()
