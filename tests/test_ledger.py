"""
Ledger tests - invoice assignment and retry, sparse merge, aggregates.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from marketbook.core.errors import ConflictError
from marketbook.db.repositories import ItemRepository
from marketbook.services import stats
from marketbook.services.invoice import INVOICE_PATTERN, generate_invoice_number
from marketbook.services.ledger import ItemLedger

FIELDS = {"name": "Chair", "description": "Wood chair", "category": "Furniture", "price": 5000.0}
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def numbers(*values):
    return iter(values).__next__


def test_invoice_number_format():
    assert generate_invoice_number(1_700_000_123_456).startswith("INV-123456-")
    assert INVOICE_PATTERN.match(generate_invoice_number(42))
    assert generate_invoice_number(42).startswith("INV-000042-")
    assert INVOICE_PATTERN.match(generate_invoice_number())


@pytest.mark.asyncio
async def test_create_assigns_generated_invoice(session, alice):
    ledger = ItemLedger(ItemRepository(session), generate_invoice=numbers("INV-000001-001"))
    item = await ledger.create(alice.id, dict(FIELDS))
    assert item.invoice_number == "INV-000001-001"
    assert item.created_by == alice.id
    assert item.payment_status == "unpaid"
    assert item.media_files == []


@pytest.mark.asyncio
async def test_create_retries_on_invoice_collision(session, alice):
    repo = ItemRepository(session)
    await ItemLedger(repo, generate_invoice=numbers("INV-000001-001")).create(alice.id, dict(FIELDS))

    ledger = ItemLedger(repo, generate_invoice=numbers("INV-000001-001", "INV-000001-002"))
    item = await ledger.create(alice.id, dict(FIELDS))
    assert item.invoice_number == "INV-000001-002"
    assert len(await repo.list_for_owner(alice.id)) == 2


@pytest.mark.asyncio
async def test_create_gives_up_after_max_attempts(session, alice):
    repo = ItemRepository(session)
    await ItemLedger(repo, generate_invoice=numbers("INV-000001-001")).create(alice.id, dict(FIELDS))

    ledger = ItemLedger(repo, max_attempts=2, generate_invoice=lambda: "INV-000001-001")
    with pytest.raises(ConflictError):
        await ledger.create(alice.id, dict(FIELDS))
    # The surrounding transaction is still usable
    assert len(await repo.list_for_owner(alice.id)) == 1


@pytest.mark.asyncio
async def test_supplied_invoice_is_tried_once(session, alice):
    repo = ItemRepository(session)
    ledger = ItemLedger(repo, generate_invoice=numbers("INV-000009-009"))
    item = await ledger.create(alice.id, {**FIELDS, "invoice_number": "CUSTOM-1"})
    assert item.invoice_number == "CUSTOM-1"

    with pytest.raises(ConflictError, match="CUSTOM-1"):
        await ledger.create(alice.id, {**FIELDS, "invoice_number": "CUSTOM-1"})


@pytest.mark.asyncio
async def test_other_integrity_errors_are_not_retried(session, alice):
    calls = []

    def generate():
        calls.append(1)
        return f"INV-000002-00{len(calls)}"

    repo = ItemRepository(session)
    ledger = ItemLedger(repo, generate_invoice=generate)
    with pytest.raises(IntegrityError):
        await ledger.create(alice.id, {**FIELDS, "name": None})
    assert len(calls) == 1
    assert await repo.list_for_owner(alice.id) == []


@pytest.mark.asyncio
async def test_update_merges_present_fields_and_appends_media(session, alice):
    ledger = ItemLedger(ItemRepository(session))
    first = {"url": "/media/a.png", "type": "image", "filename": "a.png", "size": 1}
    item = await ledger.create(alice.id, {**FIELDS, "notes": "keep"}, [first])
    invoice = item.invoice_number
    stamp = item.updated_at

    second = {"url": "/media/b.mp4", "type": "video", "filename": "b.mp4", "size": 2}
    item = await ledger.update(item, {"price": 0.0, "in_stock": False}, [second])

    assert item.price == 0.0
    assert item.in_stock is False
    assert item.notes == "keep"
    assert item.invoice_number == invoice
    assert [m["filename"] for m in item.media_files] == ["a.png", "b.mp4"]
    assert item.updated_at != stamp


def _item(category, price, status="unpaid", in_stock=True, age_days=0):
    return SimpleNamespace(
        category=category,
        price=price,
        payment_status=status,
        in_stock=in_stock,
        created_at=NOW - timedelta(days=age_days),
    )


def test_item_stats_groups_by_category_and_status():
    items = [
        _item("Furniture", 100, "paid"),
        _item("Furniture", 300, "unpaid", in_stock=False),
        _item("Lighting", 50, "pending", age_days=45),
    ]
    result = stats.item_stats(items, now=NOW)

    assert result.total_items == 3
    assert (result.in_stock_items, result.out_of_stock_items) == (2, 1)
    assert (result.paid_items, result.unpaid_items, result.pending_items) == (1, 1, 1)
    assert result.recent_items == 2
    assert [(c.category, c.count, c.avg_price) for c in result.items_by_category] == [
        ("Furniture", 2, 200),
        ("Lighting", 1, 50),
    ]
    assert {p.status.value: p.total_amount for p in result.payment_stats} == {
        "paid": 100, "pending": 50, "unpaid": 300
    }


def test_item_stats_empty():
    result = stats.item_stats([], now=NOW)
    assert result.total_items == 0
    assert result.items_by_category == []
    assert result.payment_stats == []


def test_financial_summary_splits_by_status():
    summary = stats.financial_summary(
        [_item("A", 10, "paid"), _item("A", 20, "unpaid"), _item("A", 5, "pending")]
    )
    assert summary.total_amount == 35
    assert summary.paid_amount == 10
    assert summary.unpaid_amount == 20
    assert summary.pending_amount == 5
    assert (summary.total_items, summary.paid_items, summary.unpaid_items) == (3, 1, 1)


def test_naive_timestamps_count_as_utc():
    naive = SimpleNamespace(
        category="A", price=1, payment_status="paid", in_stock=True,
        created_at=(NOW - timedelta(days=1)).replace(tzinfo=None),
    )
    assert stats.item_stats([naive], now=NOW).recent_items == 1
