"""
Orchestrator tests - phase order, abort paths and side-channel isolation.
"""

from dataclasses import dataclass

import pytest

from marketbook.core.errors import AuthorizationError, ConflictError, InternalError, NotFoundError
from marketbook.db.models.enums import AuditAction, ResourceKind, Severity
from marketbook.db.repositories import AuditLogRepository, NotificationRepository
from marketbook.services.audit_service import AuditContext, AuditRecorder
from marketbook.services.notification_service import NotificationIssuer
from marketbook.services.orchestrator import Action, ActionOrchestrator, Notice, Phase


@dataclass
class Box:
    id: int
    owner_id: int
    label: str = "box"


class Relabel(Action[Box, Box]):
    action = AuditAction.UPDATE
    resource_kind = ResourceKind.ITEM
    not_found_message = "Box not found"

    def __init__(self, boxes: dict[int, Box], box_id: int, label: str, *, details: str | None = "relabelled",
                 fail_with: Exception | None = None):
        self.boxes = boxes
        self.box_id = box_id
        self.label = label
        self.details = details
        self.fail_with = fail_with
        self.mutated = False

    async def load(self):
        return self.boxes.get(self.box_id)

    async def mutate(self, box: Box) -> Box:
        if self.fail_with is not None:
            raise self.fail_with
        self.mutated = True
        box.label = self.label
        return box

    def resource_id(self, box, result):
        return result.id

    def audit_details(self, box, result):
        return self.details

    def notice(self, box, result):
        return Notice(user_id=result.owner_id, title="Box relabelled", message=result.label,
                      severity=Severity.INFO)


class ExplodingRecorder:
    async def record(self, *args, **kwargs):
        raise RuntimeError("boom")


class ExplodingIssuer:
    async def issue(self, *args, **kwargs):
        raise RuntimeError("boom")


@pytest.fixture
def orchestrator(session):
    return ActionOrchestrator(
        AuditRecorder(session), NotificationIssuer(session), AuditContext("127.0.0.1", "pytest")
    )


@pytest.mark.asyncio
async def test_successful_run_walks_every_phase(orchestrator, session, alice):
    boxes = {1: Box(1, alice.id)}
    outcome = await orchestrator.run(alice, Relabel(boxes, 1, "fragile"))

    assert outcome.phases == [
        Phase.AUTHORIZING, Phase.MUTATING, Phase.RECORDING, Phase.NOTIFYING, Phase.DONE
    ]
    assert outcome.recorded and outcome.notified
    assert boxes[1].label == "fragile"

    [log] = await AuditLogRepository(session).list_for_resource("ITEM", 1)
    assert (log.action, log.user_id, log.ip_address, log.user_agent) == (
        "UPDATE", alice.id, "127.0.0.1", "pytest"
    )
    [notice] = await NotificationRepository(session).list_for_user(alice.id)
    assert notice.message == "fragile"


@pytest.mark.asyncio
async def test_missing_resource_aborts_before_authorization(orchestrator, session, bob):
    action = Relabel({}, 1, "x")
    with pytest.raises(NotFoundError, match="Box not found"):
        await orchestrator.run(bob, action)
    assert action.mutated is False
    assert await AuditLogRepository(session).count() == 0


@pytest.mark.asyncio
async def test_denied_actor_never_mutates(orchestrator, session, alice, bob):
    boxes = {1: Box(1, alice.id)}
    action = Relabel(boxes, 1, "stolen")
    with pytest.raises(AuthorizationError):
        await orchestrator.run(bob, action)
    assert action.mutated is False
    assert boxes[1].label == "box"
    assert await AuditLogRepository(session).count() == 0
    assert await NotificationRepository(session).list_for_user(alice.id) == []


@pytest.mark.asyncio
async def test_admin_override_can_be_switched_off(orchestrator, alice, admin):
    action = Relabel({1: Box(1, alice.id)}, 1, "x")
    action.admin_override = False
    with pytest.raises(AuthorizationError):
        await orchestrator.run(admin, action)


@pytest.mark.asyncio
async def test_app_errors_from_mutation_pass_through(orchestrator, session, alice):
    action = Relabel({1: Box(1, alice.id)}, 1, "x", fail_with=ConflictError("taken"))
    with pytest.raises(ConflictError, match="taken"):
        await orchestrator.run(alice, action)
    assert await AuditLogRepository(session).count() == 0


@pytest.mark.asyncio
async def test_unexpected_mutation_error_becomes_internal_error(orchestrator, session, alice):
    action = Relabel({1: Box(1, alice.id)}, 1, "x", fail_with=KeyError("disk"))
    with pytest.raises(InternalError):
        await orchestrator.run(alice, action)
    assert await AuditLogRepository(session).count() == 0
    assert await NotificationRepository(session).list_for_user(alice.id) == []


@pytest.mark.asyncio
async def test_failed_audit_write_still_notifies(session, alice):
    orchestrator = ActionOrchestrator(ExplodingRecorder(), NotificationIssuer(session))
    boxes = {1: Box(1, alice.id)}
    outcome = await orchestrator.run(alice, Relabel(boxes, 1, "fragile"))

    assert outcome.phases[-1] is Phase.DONE
    assert outcome.recorded is False
    assert outcome.notified is True
    assert boxes[1].label == "fragile"


@pytest.mark.asyncio
async def test_failed_notification_keeps_audit(session, alice):
    orchestrator = ActionOrchestrator(AuditRecorder(session), ExplodingIssuer())
    outcome = await orchestrator.run(alice, Relabel({1: Box(1, alice.id)}, 1, "fragile"))

    assert outcome.recorded is True
    assert outcome.notified is False
    assert await AuditLogRepository(session).count() == 1


@pytest.mark.asyncio
async def test_rejected_audit_row_rolls_back_only_itself(orchestrator, session, alice):
    # A NULL details column fails the INSERT inside the audit SAVEPOINT
    outcome = await orchestrator.run(alice, Relabel({1: Box(1, alice.id)}, 1, "fragile", details=None))

    assert outcome.recorded is False
    assert outcome.notified is True
    assert await AuditLogRepository(session).count() == 0
    assert len(await NotificationRepository(session).list_for_user(alice.id)) == 1


@pytest.mark.asyncio
async def test_notice_goes_to_owner_when_admin_acts(orchestrator, session, alice, admin):
    await orchestrator.run(admin, Relabel({1: Box(1, alice.id)}, 1, "checked"))

    [log] = await AuditLogRepository(session).list_for_resource("ITEM", 1)
    assert log.user_id == admin.id
    assert len(await NotificationRepository(session).list_for_user(alice.id)) == 1
    assert await NotificationRepository(session).list_for_user(admin.id) == []


@pytest.mark.asyncio
async def test_standalone_record_is_guarded(session, alice):
    orchestrator = ActionOrchestrator(ExplodingRecorder(), NotificationIssuer(session))
    ok = await orchestrator.record(alice.id, AuditAction.LOGIN, ResourceKind.USER, alice.id, "login")
    assert ok is False
