"""
Authorization guard: role and ownership check for a single resource.
Callers resolve existence first; a missing resource is a 404, never a DENY.
"""

from enum import Enum
from typing import Protocol


class Decision(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


class Requester(Protocol):
    id: int
    role: str


class Owned(Protocol):
    @property
    def owner_id(self) -> int: ...


def decide(requester: Requester, resource: Owned, *, admin_override: bool = True) -> Decision:
    """Admins pass when admin_override is on; otherwise only the owner does."""
    if admin_override and requester.role == "admin":
        return Decision.ALLOW
    if resource.owner_id == requester.id:
        return Decision.ALLOW
    return Decision.DENY
