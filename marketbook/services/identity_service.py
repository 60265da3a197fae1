"""
Identity service - registration, login/logout and the caller's own profile.
Registration and profile updates run through the orchestrator; login and
logout only touch the audit side channel.
"""

import hmac
from typing import Any

from sqlalchemy.exc import IntegrityError

from marketbook.config import get_settings
from marketbook.core.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from marketbook.core.security import create_access_token, hash_password, verify_password
from marketbook.core.timeutils import utcnow
from marketbook.db.models import User
from marketbook.db.models.enums import AuditAction, ResourceKind, Role, Severity
from marketbook.db.repositories.user_repository import UserRepository
from marketbook.schemas.user import (
    AdminCreate,
    AuthResponse,
    LoginRequest,
    ProfileResponse,
    ProfileUpdate,
    UserCreate,
    UserResponse,
)
from marketbook.services.audit_service import describe_changes
from marketbook.services.orchestrator import Action, ActionOrchestrator, Notice

settings = get_settings()

PROFILE_TRACKED_FIELDS = ("name", "email", "bio", "phone", "location")


def _auth_response(user: User) -> AuthResponse:
    profile = ProfileResponse.model_validate(user)
    return AuthResponse(**profile.model_dump(), access_token=create_access_token(user.id))


class RegisterUser(Action[None, User]):
    action = AuditAction.REGISTER
    resource_kind = ResourceKind.USER
    targets_existing = False

    def __init__(self, repo: UserRepository, data: UserCreate, role: Role):
        self.repo = repo
        self.data = data
        self.role = role

    async def mutate(self, resource: None) -> User:
        user = User(
            name=self.data.name,
            email=self.data.email,
            hashed_password=hash_password(self.data.password),
            role=self.role.value,
        )
        try:
            async with self.repo.session.begin_nested():
                self.repo.session.add(user)
                await self.repo.session.flush()
        except IntegrityError:
            raise ConflictError("User already exists with this email") from None
        await self.repo.session.refresh(user)
        return user

    def actor_id(self, actor, result: User) -> int:
        # The new account is its own actor
        return result.id

    def resource_id(self, resource, result: User) -> int:
        return result.id

    def audit_details(self, resource, result: User) -> str:
        label = "Admin" if result.is_admin else "User"
        return f"{label} registered: {result.email}"

    def notice(self, resource, result: User) -> Notice:
        if result.is_admin:
            return Notice(
                user_id=result.id,
                title="Admin Account Created!",
                message=(
                    "Your admin account has been created successfully. "
                    "You now have full access to the system."
                ),
                severity=Severity.SUCCESS,
            )
        return Notice(
            user_id=result.id,
            title="Welcome to MarketBook!",
            message="Your account has been created successfully. Start exploring the marketplace!",
            severity=Severity.SUCCESS,
        )


class UpdateProfile(Action[User, User]):
    action = AuditAction.UPDATE
    resource_kind = ResourceKind.PROFILE
    # Profiles are self-service only; admins get no override here
    admin_override = False
    not_found_message = "User not found"

    def __init__(self, repo: UserRepository, user_id: int, data: ProfileUpdate):
        self.repo = repo
        self.user_id = user_id
        self.data = data
        self.before: dict[str, Any] = {}

    async def load(self) -> User | None:
        user = await self.repo.get_by_id(self.user_id)
        if user is not None:
            self.before = {field: getattr(user, field) for field in PROFILE_TRACKED_FIELDS}
        return user

    async def mutate(self, user: User) -> User:
        patch = self.data.model_dump(exclude_unset=True)
        email = patch.get("email")
        if email is not None and email != user.email:
            taken = await self.repo.get_by_email(email, role=user.role)
            if taken is not None and taken.id != user.id:
                raise ConflictError("Email is already in use")
        password = patch.pop("password", None)
        for name, value in patch.items():
            setattr(user, name, value)
        if password is not None:
            user.hashed_password = hash_password(password)
        user.updated_at = utcnow()
        try:
            async with self.repo.session.begin_nested():
                await self.repo.session.flush()
        except IntegrityError:
            raise ConflictError("Email is already in use") from None
        await self.repo.session.refresh(user)
        return user

    def resource_id(self, user, result: User) -> int:
        return result.id

    def audit_details(self, user, result: User) -> str:
        after = {field: getattr(result, field) for field in PROFILE_TRACKED_FIELDS}
        return f"Profile updated: {describe_changes(self.before, after)}"

    def notice(self, user, result: User) -> Notice:
        return Notice(
            user_id=result.id,
            title="Profile Updated",
            message="Your profile has been updated successfully.",
            severity=Severity.SUCCESS,
        )


class IdentityService:
    def __init__(self, repo: UserRepository, orchestrator: ActionOrchestrator):
        self.repo = repo
        self.orchestrator = orchestrator

    async def register(self, data: UserCreate) -> AuthResponse:
        """Regular accounts: refused when the email is taken by any account."""
        if await self.repo.get_by_email(data.email) is not None:
            raise ConflictError("User already exists with this email")
        outcome = await self.orchestrator.run(None, RegisterUser(self.repo, data, Role.USER))
        return _auth_response(outcome.result)

    async def register_admin(self, data: AdminCreate) -> AuthResponse:
        """Admin accounts need the enrollment code.

        Only an existing *admin* with this email blocks the request; a regular
        account with the same email does not.
        """
        if not hmac.compare_digest(data.admin_code.encode(), settings.admin_enrollment_code.encode()):
            raise ValidationError("Invalid admin code")
        if await self.repo.get_by_email(data.email, role=Role.ADMIN.value) is not None:
            raise ConflictError("Admin account already exists for this email")
        outcome = await self.orchestrator.run(None, RegisterUser(self.repo, data, Role.ADMIN))
        return _auth_response(outcome.result)

    async def authenticate(self, data: LoginRequest) -> AuthResponse:
        """First account with this email (and role, if given) whose password matches."""
        for user in await self.repo.list_by_email(data.email):
            if data.role is not None and user.role != data.role.value:
                continue
            if verify_password(data.password, user.hashed_password):
                await self.orchestrator.record(
                    user.id, AuditAction.LOGIN, ResourceKind.USER, user.id,
                    f"User logged in: {user.email}",
                )
                return _auth_response(user)
        raise AuthenticationError("Invalid email or password")

    async def logout(self, user: User) -> None:
        """Tokens are stateless; logging out only leaves an audit trail."""
        await self.orchestrator.record(
            user.id, AuditAction.LOGOUT, ResourceKind.USER, user.id,
            f"User logged out: {user.email}",
        )

    async def get_profile(self, user_id: int) -> ProfileResponse:
        user = await self.repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return ProfileResponse.model_validate(user)

    async def update_profile(self, actor: User, data: ProfileUpdate) -> AuthResponse:
        outcome = await self.orchestrator.run(actor, UpdateProfile(self.repo, actor.id, data))
        return _auth_response(outcome.result)

    async def list_users(self) -> list[UserResponse]:
        return [UserResponse.model_validate(u) for u in await self.repo.list_all()]
