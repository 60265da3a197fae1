"""
User repository - all user lookups, including the per-role email checks.
"""

from sqlalchemy import select

from marketbook.db.models.user import User
from marketbook.db.repositories.base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, session):
        super().__init__(session, User)

    async def get_by_email(self, email: str, role: str | None = None) -> User | None:
        """First account registered with this email, optionally for one role."""
        query = select(User).where(User.email == email)
        if role is not None:
            query = query.where(User.role == role)
        result = await self.session.execute(query.order_by(User.id).limit(1))
        return result.scalar_one_or_none()

    async def list_by_email(self, email: str) -> list[User]:
        """Every account sharing this email, oldest first (at most one per role)."""
        result = await self.session.execute(
            select(User).where(User.email == email).order_by(User.id)
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[User]:
        result = await self.session.execute(
            select(User).order_by(User.created_at.desc(), User.id.desc())
        )
        return list(result.scalars().all())
