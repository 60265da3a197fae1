"""
Audit recorder - appends immutable audit rows.
Each write runs in its own SAVEPOINT, so a failed audit insert rolls back
only itself and leaves the request's primary mutation intact.
"""

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from marketbook.db.models.audit_log import AuditLog
from marketbook.db.models.enums import AuditAction, ResourceKind
from marketbook.db.repositories.audit_log_repository import AuditLogRepository
from marketbook.schemas.audit import AuditLogPage, AuditLogResponse, Pagination


@dataclass(frozen=True)
class AuditContext:
    """Client metadata stored with every audit row."""

    ip_address: str | None = None
    user_agent: str | None = None


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return f"{value:g}"
    if value is None:
        return ""
    return str(value)


def describe_changes(before: dict[str, Any], after: dict[str, Any]) -> str:
    """Field-by-field diff of tracked fields: 'price: 10 -> 12, inStock: true -> false'."""
    changes = [
        f"{field}: {_format_value(old)} -> {_format_value(after.get(field))}"
        for field, old in before.items()
        if old != after.get(field)
    ]
    return ", ".join(changes) if changes else "no tracked changes"


class AuditRecorder:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        actor_id: int,
        action: AuditAction,
        resource: ResourceKind,
        resource_id: int | None,
        details: str,
        context: AuditContext,
    ) -> AuditLog:
        entry = AuditLog(
            user_id=actor_id,
            action=action.value,
            resource=resource.value,
            resource_id=resource_id,
            details=details,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )
        async with self.session.begin_nested():
            self.session.add(entry)
            await self.session.flush()
        return entry


class AuditLogService:
    """Admin read path over the audit trail."""

    def __init__(self, repo: AuditLogRepository):
        self.repo = repo

    async def page(self, page: int, limit: int) -> AuditLogPage:
        total = await self.repo.count()
        logs = await self.repo.get_many(skip=(page - 1) * limit, limit=limit)
        return AuditLogPage(
            logs=[AuditLogResponse.model_validate(log) for log in logs],
            pagination=Pagination(
                page=page, limit=limit, total=total, pages=math.ceil(total / limit)
            ),
        )
