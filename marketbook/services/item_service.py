"""
Item service - item use cases. Reads go straight to the ledger; every write
is an Action run through the orchestrator (authorize, mutate, audit, notify).
"""

from typing import Any

from starlette.datastructures import UploadFile

from marketbook.core.errors import AuthorizationError, NotFoundError, ValidationError
from marketbook.core.guard import Decision, decide
from marketbook.db.models import Item, User
from marketbook.db.models.enums import AuditAction, PaymentStatus, ResourceKind, Severity
from marketbook.media.storage import LocalMediaStore
from marketbook.schemas.base import MessageResponse
from marketbook.schemas.item import ItemCreate, ItemResponse, ItemUpdate
from marketbook.schemas.stats import FinancialSummary, ItemStats
from marketbook.services.audit_service import describe_changes
from marketbook.services.ledger import ItemLedger
from marketbook.services.orchestrator import Action, ActionOrchestrator, Notice

# Fields whose changes are spelled out in UPDATE audit entries
TRACKED_FIELDS = {
    "name": "name",
    "description": "description",
    "category": "category",
    "price": "price",
    "inStock": "in_stock",
    "paymentStatus": "payment_status",
}


def _snapshot(item: Item) -> dict[str, Any]:
    return {label: getattr(item, attr) for label, attr in TRACKED_FIELDS.items()}


def _item_url(item_id: int) -> str:
    return f"/items/{item_id}"


class CreateItem(Action[None, Item]):
    action = AuditAction.CREATE
    resource_kind = ResourceKind.ITEM
    targets_existing = False

    def __init__(self, ledger: ItemLedger, media: LocalMediaStore, owner_id: int,
                 data: ItemCreate, uploads: list[UploadFile]):
        self.ledger = ledger
        self.media = media
        self.owner_id = owner_id
        self.data = data
        self.uploads = uploads

    async def mutate(self, resource: None) -> Item:
        media_files = await self.media.save_all(self.uploads)
        try:
            return await self.ledger.create(self.owner_id, self.data.model_dump(), media_files)
        except Exception:
            await self.media.discard(media_files)
            raise

    def resource_id(self, resource, result: Item) -> int:
        return result.id

    def audit_details(self, resource, result: Item) -> str:
        return f"Created item: {result.name} (Invoice: {result.invoice_number})"

    def notice(self, resource, result: Item) -> Notice:
        return Notice(
            user_id=result.created_by,
            title="Item Created",
            message=(
                f'Your item "{result.name}" has been created successfully '
                f"with invoice number {result.invoice_number}."
            ),
            severity=Severity.SUCCESS,
            action_url=_item_url(result.id),
        )


class UpdateItem(Action[Item, Item]):
    action = AuditAction.UPDATE
    resource_kind = ResourceKind.ITEM
    not_found_message = "Item not found"

    def __init__(self, ledger: ItemLedger, media: LocalMediaStore, item_id: int,
                 data: ItemUpdate, uploads: list[UploadFile]):
        self.ledger = ledger
        self.media = media
        self.item_id = item_id
        self.data = data
        self.uploads = uploads
        self.before: dict[str, Any] = {}

    async def load(self) -> Item | None:
        item = await self.ledger.get(self.item_id)
        if item is not None:
            self.before = _snapshot(item)
        return item

    async def mutate(self, item: Item) -> Item:
        new_media = await self.media.save_all(self.uploads)
        try:
            return await self.ledger.update(item, self.data.model_dump(exclude_unset=True), new_media)
        except Exception:
            await self.media.discard(new_media)
            raise

    def resource_id(self, item, result: Item) -> int:
        return result.id

    def audit_details(self, item, result: Item) -> str:
        return f"Updated item: {result.name} ({describe_changes(self.before, _snapshot(result))})"

    def notice(self, item, result: Item) -> Notice:
        return Notice(
            user_id=result.created_by,
            title="Item Updated",
            message=f'Your item "{result.name}" has been updated.',
            severity=Severity.INFO,
            action_url=_item_url(result.id),
        )


class DeleteItem(Action[Item, MessageResponse]):
    action = AuditAction.DELETE
    resource_kind = ResourceKind.ITEM
    not_found_message = "Item not found"

    def __init__(self, ledger: ItemLedger, item_id: int):
        self.ledger = ledger
        self.item_id = item_id
        self.removed: dict[str, Any] = {}

    async def load(self) -> Item | None:
        item = await self.ledger.get(self.item_id)
        if item is not None:
            self.removed = {
                "id": item.id,
                "name": item.name,
                "invoice_number": item.invoice_number,
                "owner_id": item.created_by,
            }
        return item

    async def mutate(self, item: Item) -> MessageResponse:
        await self.ledger.delete(item)
        return MessageResponse(message="Item removed")

    def resource_id(self, item, result) -> int:
        return self.removed["id"]

    def audit_details(self, item, result) -> str:
        return f"Deleted item: {self.removed['name']} (Invoice: {self.removed['invoice_number']})"

    def notice(self, item, result) -> Notice:
        # The owner hears about it, even when an admin did the deleting
        return Notice(
            user_id=self.removed["owner_id"],
            title="Item Deleted",
            message=f'Your item "{self.removed["name"]}" has been deleted.',
            severity=Severity.WARNING,
        )


class ItemService:
    def __init__(self, ledger: ItemLedger, orchestrator: ActionOrchestrator, media: LocalMediaStore):
        self.ledger = ledger
        self.orchestrator = orchestrator
        self.media = media

    async def create(self, actor: User, data: ItemCreate, uploads: list[UploadFile] = ()) -> ItemResponse:
        uploads = list(uploads)
        await self.media.check(uploads)
        outcome = await self.orchestrator.run(
            actor, CreateItem(self.ledger, self.media, actor.id, data, uploads)
        )
        return ItemResponse.model_validate(outcome.result)

    async def update(
        self, actor: User, item_id: int, data: ItemUpdate, uploads: list[UploadFile] = ()
    ) -> ItemResponse:
        uploads = list(uploads)
        await self.media.check(uploads)
        outcome = await self.orchestrator.run(
            actor, UpdateItem(self.ledger, self.media, item_id, data, uploads)
        )
        return ItemResponse.model_validate(outcome.result)

    async def delete(self, actor: User, item_id: int) -> MessageResponse:
        outcome = await self.orchestrator.run(actor, DeleteItem(self.ledger, item_id))
        return outcome.result

    async def get(self, actor: User, item_id: int) -> ItemResponse:
        item = await self.ledger.get(item_id)
        if item is None:
            raise NotFoundError("Item not found")
        if decide(actor, item) is Decision.DENY:
            raise AuthorizationError()
        return ItemResponse.model_validate(item)

    async def list_items(self, actor: User) -> list[ItemResponse]:
        """Admins see every item, everyone else only their own."""
        if actor.is_admin:
            items = await self.ledger.list_all()
        else:
            items = await self.ledger.list_for_owner(actor.id)
        return [ItemResponse.model_validate(i) for i in items]

    async def list_all(self) -> list[ItemResponse]:
        return [ItemResponse.model_validate(i) for i in await self.ledger.list_all()]

    async def by_payment_status(self, actor: User, status: str) -> list[ItemResponse]:
        try:
            status = PaymentStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown payment status: {status}") from None
        owner_id = None if actor.is_admin else actor.id
        items = await self.ledger.list_by_payment_status(status.value, owner_id)
        return [ItemResponse.model_validate(i) for i in items]

    async def stats(self) -> ItemStats:
        return await self.ledger.aggregate_stats()

    async def financial_summary(self, actor: User) -> FinancialSummary:
        return await self.ledger.financial_summary_for_owner(actor.id)
