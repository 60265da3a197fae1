"""Admin-only read paths: the paginated audit trail and the dashboard."""

from marketbook.db.repositories.audit_log_repository import AuditLogRepository
from marketbook.db.repositories.user_repository import UserRepository
from marketbook.schemas.audit import AuditLogPage
from marketbook.schemas.stats import DashboardStats
from marketbook.services import stats
from marketbook.services.audit_service import AuditLogService


class AdminService:
    def __init__(self, user_repo: UserRepository, audit_repo: AuditLogRepository):
        self.user_repo = user_repo
        self.audit_repo = audit_repo

    async def audit_logs(self, page: int, limit: int) -> AuditLogPage:
        return await AuditLogService(self.audit_repo).page(page, limit)

    async def dashboard_stats(self) -> DashboardStats:
        users = await self.user_repo.list_all()
        logs = await self.audit_repo.list_all()
        return stats.dashboard_stats(users, logs)
