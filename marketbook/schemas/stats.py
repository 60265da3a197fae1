"""Aggregate response shapes: item stats, financial summary, admin dashboard."""

from marketbook.db.models.enums import AuditAction, PaymentStatus
from marketbook.schemas.audit import AuditLogResponse
from marketbook.schemas.base import ApiModel


class CategoryStats(ApiModel):
    category: str
    count: int
    avg_price: float


class PaymentStats(ApiModel):
    status: PaymentStatus
    count: int
    total_amount: float


class ItemStats(ApiModel):
    total_items: int
    in_stock_items: int
    out_of_stock_items: int
    paid_items: int
    unpaid_items: int
    pending_items: int
    recent_items: int
    items_by_category: list[CategoryStats]
    payment_stats: list[PaymentStats]


class FinancialSummary(ApiModel):
    total_amount: float = 0.0
    paid_amount: float = 0.0
    unpaid_amount: float = 0.0
    pending_amount: float = 0.0
    total_items: int = 0
    paid_items: int = 0
    unpaid_items: int = 0


class UserCounts(ApiModel):
    total_users: int
    total_admins: int
    total_regular_users: int
    recent_users: int
    recent_activity: int


class ActionCount(ApiModel):
    action: AuditAction
    count: int


class DashboardStats(ApiModel):
    stats: UserCounts
    activity_by_action: list[ActionCount]
    recent_logs: list[AuditLogResponse]
