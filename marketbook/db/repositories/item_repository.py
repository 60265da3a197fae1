"""
Item repository - item queries. The owner relationship is eager-loaded
(selectin) on every query, so responses never trigger lazy IO.
"""

from sqlalchemy import select

from marketbook.db.models.item import Item
from marketbook.db.repositories.base_repository import BaseRepository


class ItemRepository(BaseRepository[Item]):
    def __init__(self, session):
        super().__init__(session, Item)

    async def list_for_owner(self, owner_id: int) -> list[Item]:
        result = await self.session.execute(
            select(Item)
            .where(Item.created_by == owner_id)
            .order_by(Item.created_at.desc(), Item.id.desc())
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[Item]:
        result = await self.session.execute(
            select(Item).order_by(Item.created_at.desc(), Item.id.desc())
        )
        return list(result.scalars().all())

    async def list_by_payment_status(self, status: str, owner_id: int | None = None) -> list[Item]:
        """Items with one payment status; restricted to an owner when given."""
        query = select(Item).where(Item.payment_status == status)
        if owner_id is not None:
            query = query.where(Item.created_by == owner_id)
        result = await self.session.execute(
            query.order_by(Item.created_at.desc(), Item.id.desc())
        )
        return list(result.scalars().all())
