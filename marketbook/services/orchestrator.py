"""
Action orchestrator - runs every write path through the same sequence:

    AUTHORIZING -> MUTATING -> RECORDING -> NOTIFYING -> DONE

AUTHORIZING resolves existence before ownership (404 before 403) and ends in
ABORTED on either. MUTATING is the operation of record: any error ends in
FAILED and nothing else runs. RECORDING and NOTIFYING are best effort; their
failures are logged and counted, never raised and never rolled back against
the mutation.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from prometheus_client import Counter

from marketbook.core.errors import AppError, AuthorizationError, InternalError, NotFoundError
from marketbook.core.guard import Decision, Requester, decide
from marketbook.db.models.enums import AuditAction, ResourceKind, Severity
from marketbook.services.audit_service import AuditContext, AuditRecorder
from marketbook.services.notification_service import NotificationIssuer

logger = logging.getLogger(__name__)

ACTIONS_TOTAL = Counter(
    "marketbook_actions_total",
    "Orchestrated write actions by terminal state",
    ["action", "resource", "outcome"],
)
SIDE_CHANNEL_FAILURES = Counter(
    "marketbook_side_channel_failures_total",
    "Audit or notification writes that failed after a successful mutation",
    ["channel"],
)

R = TypeVar("R")
T = TypeVar("T")


class Phase(str, Enum):
    AUTHORIZING = "AUTHORIZING"
    MUTATING = "MUTATING"
    RECORDING = "RECORDING"
    NOTIFYING = "NOTIFYING"
    DONE = "DONE"
    ABORTED = "ABORTED"
    FAILED = "FAILED"


@dataclass
class Notice:
    """Notification to deliver once the mutation has succeeded."""

    user_id: int
    title: str
    message: str
    severity: Severity = Severity.INFO
    action_url: str | None = None


@dataclass
class ActionOutcome(Generic[T]):
    result: T
    phases: list[Phase] = field(default_factory=list)
    recorded: bool = False
    notified: bool = False


class Action(ABC, Generic[R, T]):
    """One write path. R is the target resource, T what the mutation returns.

    Creates set targets_existing = False and receive None as the resource.
    """

    action: AuditAction
    resource_kind: ResourceKind
    targets_existing = True
    admin_override = True
    not_found_message = "Not found"

    async def load(self) -> R | None:
        return None

    @abstractmethod
    async def mutate(self, resource: R | None) -> T: ...

    @abstractmethod
    def resource_id(self, resource: R | None, result: T) -> int | None: ...

    @abstractmethod
    def audit_details(self, resource: R | None, result: T) -> str: ...

    @abstractmethod
    def notice(self, resource: R | None, result: T) -> Notice | None: ...

    def actor_id(self, actor: Requester | None, result: T) -> int:
        return actor.id


class ActionOrchestrator:
    def __init__(
        self,
        recorder: AuditRecorder,
        notifier: NotificationIssuer,
        context: AuditContext | None = None,
    ):
        self.recorder = recorder
        self.notifier = notifier
        self.context = context or AuditContext()

    async def run(self, actor: Requester | None, action: Action[R, T]) -> ActionOutcome[T]:
        labels = (action.action.value, action.resource_kind.value)
        outcome: ActionOutcome[T] = ActionOutcome(result=None, phases=[Phase.AUTHORIZING])

        resource = None
        if action.targets_existing:
            resource = await action.load()
            if resource is None:
                self._finish(outcome, labels, Phase.ABORTED)
                raise NotFoundError(action.not_found_message)
            if decide(actor, resource, admin_override=action.admin_override) is Decision.DENY:
                self._finish(outcome, labels, Phase.ABORTED)
                raise AuthorizationError()

        outcome.phases.append(Phase.MUTATING)
        try:
            result = await action.mutate(resource)
        except AppError:
            self._finish(outcome, labels, Phase.FAILED)
            raise
        except Exception as exc:
            self._finish(outcome, labels, Phase.FAILED)
            logger.exception("%s %s failed while mutating", *labels)
            raise InternalError() from exc
        outcome.result = result

        outcome.phases.append(Phase.RECORDING)
        outcome.recorded = await self._guarded(
            "audit",
            lambda: self.recorder.record(
                action.actor_id(actor, result),
                action.action,
                action.resource_kind,
                action.resource_id(resource, result),
                action.audit_details(resource, result),
                self.context,
            ),
        )

        outcome.phases.append(Phase.NOTIFYING)
        outcome.notified = await self._guarded(
            "notification", lambda: self._deliver(action.notice(resource, result))
        )

        self._finish(outcome, labels, Phase.DONE)
        return outcome

    async def record(
        self,
        actor_id: int,
        action: AuditAction,
        resource_kind: ResourceKind,
        resource_id: int | None,
        details: str,
    ) -> bool:
        """Side-channel audit write for paths with no mutation (login, logout)."""
        return await self._guarded(
            "audit",
            lambda: self.recorder.record(
                actor_id, action, resource_kind, resource_id, details, self.context
            ),
        )

    async def notify(self, notice: Notice) -> bool:
        return await self._guarded("notification", lambda: self._deliver(notice))

    async def _deliver(self, notice: Notice | None) -> None:
        if notice is None:
            return
        await self.notifier.issue(
            notice.user_id,
            notice.title,
            notice.message,
            notice.severity,
            notice.action_url,
        )

    async def _guarded(self, channel: str, write: Callable[[], Awaitable[Any]]) -> bool:
        try:
            await write()
        except Exception:
            SIDE_CHANNEL_FAILURES.labels(channel).inc()
            logger.exception("Failed to write %s entry; continuing", channel)
            return False
        return True

    @staticmethod
    def _finish(outcome: ActionOutcome, labels: tuple[str, str], phase: Phase) -> None:
        outcome.phases.append(phase)
        ACTIONS_TOTAL.labels(*labels, phase.value.lower()).inc()
        logger.debug("%s %s: %s", *labels, " -> ".join(p.value for p in outcome.phases))
