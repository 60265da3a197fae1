"""
Item ledger - store-level item operations: invoice assignment with
collision retry, sparse-merge updates, append-only media, and the
aggregate reductions.
"""

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from sqlalchemy.exc import IntegrityError

from marketbook.config import get_settings
from marketbook.core.errors import ConflictError
from marketbook.core.timeutils import utcnow
from marketbook.db.models.item import Item
from marketbook.db.repositories.item_repository import ItemRepository
from marketbook.schemas.stats import FinancialSummary, ItemStats
from marketbook.services import stats
from marketbook.services.invoice import generate_invoice_number

logger = logging.getLogger(__name__)
settings = get_settings()


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _is_invoice_collision(exc: IntegrityError) -> bool:
    # SQLite: "UNIQUE constraint failed: items.invoice_number",
    # PostgreSQL: 'unique constraint "items_invoice_number_key"'
    return "invoice_number" in str(exc.orig)


class ItemLedger:
    def __init__(
        self,
        repo: ItemRepository,
        *,
        max_attempts: int | None = None,
        generate_invoice: Callable[[], str] = generate_invoice_number,
    ):
        self.repo = repo
        self.session = repo.session
        # At least one retry after a collision of a generated number
        self.max_attempts = max(2, max_attempts or settings.invoice_max_attempts)
        self.generate_invoice = generate_invoice

    async def create(
        self,
        owner_id: int,
        fields: dict[str, Any],
        media_files: list[dict[str, Any]] | None = None,
    ) -> Item:
        """Insert a new item owned by owner_id and assign its invoice number once.

        A caller-supplied invoice number is tried once. Generated numbers are
        regenerated on a uniqueness violation, each attempt in its own
        SAVEPOINT so a collision leaves the surrounding transaction usable.
        """
        fields = {key: _plain(value) for key, value in fields.items()}
        supplied = fields.pop("invoice_number", None)
        attempts = 1 if supplied else self.max_attempts

        for attempt in range(1, attempts + 1):
            number = supplied or self.generate_invoice()
            item = Item(
                **fields,
                created_by=owner_id,
                media_files=list(media_files or []),
                invoice_number=number,
            )
            try:
                async with self.session.begin_nested():
                    self.session.add(item)
                    await self.session.flush()
            except IntegrityError as exc:
                if not _is_invoice_collision(exc):
                    raise
                logger.warning(
                    "Invoice number %s already taken (attempt %d/%d)", number, attempt, attempts
                )
                continue
            await self.session.refresh(item)
            return item

        if supplied:
            raise ConflictError(f"Invoice number {supplied} is already in use")
        raise ConflictError("Could not assign a unique invoice number, please retry")

    async def get(self, item_id: int) -> Item | None:
        return await self.repo.get_by_id(item_id)

    async def list_for_owner(self, owner_id: int) -> list[Item]:
        return await self.repo.list_for_owner(owner_id)

    async def list_all(self) -> list[Item]:
        return await self.repo.list_all()

    async def list_by_payment_status(self, status: str, owner_id: int | None = None) -> list[Item]:
        return await self.repo.list_by_payment_status(status, owner_id)

    async def update(
        self,
        item: Item,
        patch: dict[str, Any],
        new_media: list[dict[str, Any]] | None = None,
    ) -> Item:
        """Sparse merge: every key in patch overwrites, everything else is untouched.

        The patch only ever comes from ItemUpdate, which has no invoice or owner
        fields. New media is appended to the existing list.
        """
        for name, value in patch.items():
            setattr(item, name, _plain(value))
        if new_media:
            item.media_files = [*item.media_files, *new_media]
        item.updated_at = utcnow()
        return await self.repo.save(item)

    async def delete(self, item: Item) -> None:
        await self.repo.delete(item)

    async def aggregate_stats(self) -> ItemStats:
        return stats.item_stats(await self.repo.list_all())

    async def financial_summary_for_owner(self, owner_id: int) -> FinancialSummary:
        return stats.financial_summary(await self.repo.list_for_owner(owner_id))
