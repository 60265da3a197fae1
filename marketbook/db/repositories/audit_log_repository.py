"""Audit log repository - append and admin read paths only."""

from sqlalchemy import select

from marketbook.db.models.audit_log import AuditLog
from marketbook.db.repositories.base_repository import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):
    def __init__(self, session):
        super().__init__(session, AuditLog)

    async def list_all(self) -> list[AuditLog]:
        result = await self.session.execute(
            select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        )
        return list(result.scalars().all())

    async def list_for_resource(self, resource: str, resource_id: int) -> list[AuditLog]:
        result = await self.session.execute(
            select(AuditLog)
            .where(AuditLog.resource == resource, AuditLog.resource_id == resource_id)
            .order_by(AuditLog.id)
        )
        return list(result.scalars().all())
