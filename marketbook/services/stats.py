"""
Aggregate statistics as plain grouped reductions over loaded rows.
Pure functions: no session, no query engine; callers pass the collections.
"""

from collections import Counter, defaultdict
from collections.abc import Iterable
from datetime import datetime, timedelta

from marketbook.core.timeutils import as_utc, utcnow
from marketbook.db.models import AuditLog, Item, User
from marketbook.db.models.enums import AuditAction, PaymentStatus, Role
from marketbook.schemas.audit import AuditLogResponse
from marketbook.schemas.stats import (
    ActionCount,
    CategoryStats,
    DashboardStats,
    FinancialSummary,
    ItemStats,
    PaymentStats,
    UserCounts,
)

RECENT_WINDOW = timedelta(days=30)
RECENT_LOGS = 10


def _is_recent(created_at: datetime | None, cutoff: datetime) -> bool:
    return created_at is not None and as_utc(created_at) >= cutoff


def item_stats(items: Iterable[Item], now: datetime | None = None) -> ItemStats:
    items = list(items)
    cutoff = (now or utcnow()) - RECENT_WINDOW

    by_status = Counter(item.payment_status for item in items)
    in_stock = sum(1 for item in items if item.in_stock)

    category_prices: dict[str, list[float]] = defaultdict(list)
    for item in items:
        category_prices[item.category].append(item.price)
    categories = sorted(
        (
            CategoryStats(category=name, count=len(prices), avg_price=sum(prices) / len(prices))
            for name, prices in category_prices.items()
        ),
        key=lambda c: (-c.count, c.category),
    )

    status_totals: dict[str, float] = defaultdict(float)
    for item in items:
        status_totals[item.payment_status] += item.price
    payments = [
        PaymentStats(status=status, count=by_status[status], total_amount=status_totals[status])
        for status in sorted(by_status)
    ]

    return ItemStats(
        total_items=len(items),
        in_stock_items=in_stock,
        out_of_stock_items=len(items) - in_stock,
        paid_items=by_status[PaymentStatus.PAID.value],
        unpaid_items=by_status[PaymentStatus.UNPAID.value],
        pending_items=by_status[PaymentStatus.PENDING.value],
        recent_items=sum(1 for item in items if _is_recent(item.created_at, cutoff)),
        items_by_category=categories,
        payment_stats=payments,
    )


def financial_summary(items: Iterable[Item]) -> FinancialSummary:
    """Sum and count one owner's items grouped by payment status."""
    summary = FinancialSummary()
    for item in items:
        summary.total_amount += item.price
        summary.total_items += 1
        if item.payment_status == PaymentStatus.PAID.value:
            summary.paid_amount += item.price
            summary.paid_items += 1
        elif item.payment_status == PaymentStatus.UNPAID.value:
            summary.unpaid_amount += item.price
            summary.unpaid_items += 1
        elif item.payment_status == PaymentStatus.PENDING.value:
            summary.pending_amount += item.price
    return summary


def dashboard_stats(
    users: Iterable[User], logs: Iterable[AuditLog], now: datetime | None = None
) -> DashboardStats:
    """Admin dashboard. `logs` must be ordered newest first."""
    users = list(users)
    logs = list(logs)
    cutoff = (now or utcnow()) - RECENT_WINDOW

    admins = sum(1 for user in users if user.role == Role.ADMIN.value)
    by_action = Counter(log.action for log in logs)

    return DashboardStats(
        stats=UserCounts(
            total_users=len(users),
            total_admins=admins,
            total_regular_users=len(users) - admins,
            recent_users=sum(1 for user in users if _is_recent(user.created_at, cutoff)),
            recent_activity=sum(1 for log in logs if _is_recent(log.created_at, cutoff)),
        ),
        activity_by_action=[
            ActionCount(action=AuditAction(action), count=count)
            for action, count in sorted(by_action.items())
        ],
        recent_logs=[AuditLogResponse.model_validate(log) for log in logs[:RECENT_LOGS]],
    )
