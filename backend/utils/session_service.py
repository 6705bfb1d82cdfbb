import logging
from typing import Optional
from pydantic import ValidationError

from config.constants import PROFILES
from models.results import OperationResult
from models.user import (
    Mode,
    Profile,
    ProfileUpdate,
    Role,
    SellerApplication,
    SellerLevel,
    UserCreate,
)
from utils.clock import utc_now
from utils.errors import (
    MarketplaceError,
    NotAuthenticated,
    ValidationFailed,
    from_validation_error,
)
from utils.hash import hash_password, verify_password
from utils.session_provider import AuthEvent, SessionProvider

logger = logging.getLogger(__name__)


def default_mode_for(role: Role) -> Mode:
    return Mode.SELLER if role == Role.SELLER else Mode.BUYER


class SessionContext:
    """
    Single source of truth for who is acting and in which mode.

    Subscribes to the session provider exactly once, when constructed.
    A buyer is pinned to buyer mode; sellers and admins may switch.
    """

    def __init__(self, provider: SessionProvider, gateway, clock=utc_now):
        self.provider = provider
        self.gateway = gateway
        self.clock = clock

        self.actor: Optional[Profile] = None
        self.current_mode: Mode = Mode.BUYER

        self._unsubscribe = provider.on_auth_state_change(self._on_auth_event)

        current = provider.get_current_actor()
        if current is not None:
            self._on_auth_event(AuthEvent.SIGNED_IN, current)

    @property
    def is_authenticated(self) -> bool:
        return self.actor is not None

    def close(self) -> None:
        self._unsubscribe()

    def _on_auth_event(self, event: AuthEvent, actor: Optional[Profile]) -> None:
        if event == AuthEvent.SIGNED_OUT or actor is None:
            self.actor = None
            self.current_mode = Mode.BUYER
            return

        self.actor = actor
        if event == AuthEvent.SIGNED_IN:
            self.current_mode = actor.current_mode if actor.can_switch_mode else Mode.BUYER
        elif not actor.can_switch_mode:
            self.current_mode = Mode.BUYER

    def require_actor(self) -> Profile:
        if self.actor is None:
            raise NotAuthenticated("You need to sign in first")
        return self.actor

    # -----------------------------
    # SIGNUP / LOGIN / LOGOUT
    # -----------------------------

    async def signup(self, name: str, email: str, password: str) -> OperationResult:
        try:
            try:
                data = UserCreate(name=name, email=email, password=password)
            except ValidationError as e:
                raise from_validation_error(e)

            table = self.gateway.table(PROFILES)
            if await table.find_one({"email": data.email.lower()}):
                raise ValidationFailed("User already exists")

            now = self.clock()
            row = {
                "name": data.name,
                "email": data.email.lower(),
                "password_hash": hash_password(data.password),
                "role": Role.BUYER.value,
                "rating": 0.0,
                "total_reviews": 0,
                "seller_level": SellerLevel.NEW_SELLER.value,
                "is_verified": False,
                "is_active": True,
                "current_mode": Mode.BUYER.value,
                "created_at": now,
                "last_active": now,
            }
            row["id"] = await table.insert(row)
        except MarketplaceError as e:
            return OperationResult.fail(e)

        self.provider.sign_in(Profile.from_row(row))
        return OperationResult.ok("Account created successfully", id=row["id"])

    async def login(self, email: str, password: str) -> OperationResult:
        try:
            table = self.gateway.table(PROFILES)
            row = await table.find_one({"email": (email or "").strip().lower()})
            if not row or not verify_password(password, row.get("password_hash") or ""):
                raise ValidationFailed("Invalid credentials")

            if not row.get("is_active", True):
                raise ValidationFailed("Account is disabled")

            mode = default_mode_for(Role(row["role"]))
            changes = {"current_mode": mode.value, "last_active": self.clock()}
            await table.update(row["id"], changes)
            row.update(changes)
        except MarketplaceError as e:
            return OperationResult.fail(e)

        self.provider.sign_in(Profile.from_row(row))
        return OperationResult.ok("Login successful", id=row["id"])

    def logout(self) -> None:
        self.provider.sign_out()

    # -----------------------------
    # MODE
    # -----------------------------

    def switch_mode(self, mode: Mode) -> bool:
        """
        Returns whether the mode changed hands. Buyers and signed-out
        sessions are ignored without error.
        """
        if self.actor is None or not self.actor.can_switch_mode:
            return False
        self.current_mode = Mode(mode)
        return True

    async def save_mode(self) -> OperationResult:
        try:
            actor = self.require_actor()
            await self.gateway.table(PROFILES).update(
                actor.id, {"current_mode": self.current_mode.value}
            )
        except MarketplaceError as e:
            return OperationResult.fail(e)

        self.actor = actor.model_copy(update={"current_mode": self.current_mode})
        return OperationResult.ok(f"Switched to {self.current_mode.value} mode")

    # -----------------------------
    # PROFILE
    # -----------------------------

    async def become_seller(self, data) -> OperationResult:
        try:
            actor = self.require_actor()
            if actor.role != Role.BUYER:
                raise ValidationFailed("Account is already a seller")

            try:
                application = SellerApplication.model_validate(data or {})
            except ValidationError as e:
                raise from_validation_error(e)

            skills = [s.strip() for s in application.skills if s and s.strip()]
            languages = [l.strip() for l in application.languages if l and l.strip()]

            if not application.bio.strip():
                raise ValidationFailed("Bio is required")
            if not skills:
                raise ValidationFailed("Add at least one skill")
            if not languages:
                raise ValidationFailed("Add at least one language")

            changes = {
                "role": Role.SELLER.value,
                "bio": application.bio.strip(),
                "skills": skills,
                "languages": languages,
                "current_mode": Mode.SELLER.value,
                "updated_at": self.clock(),
            }
            if application.profile_pic:
                changes["profile_pic"] = application.profile_pic

            await self.gateway.table(PROFILES).update(actor.id, changes)
        except MarketplaceError as e:
            return OperationResult.fail(e)

        updated = actor.model_copy(update={
            "role": Role.SELLER,
            "bio": changes["bio"],
            "skills": skills,
            "languages": languages,
            "profile_pic": changes.get("profile_pic", actor.profile_pic),
            "current_mode": Mode.SELLER,
        })
        self.provider.update_actor(updated)
        self.current_mode = Mode.SELLER

        logger.info("SELLER_ACTIVATED user=%s", actor.id)
        return OperationResult.ok("Seller account activated successfully", id=actor.id)

    async def update_profile(self, changes) -> OperationResult:
        try:
            actor = self.require_actor()
            try:
                update = ProfileUpdate.model_validate(changes or {})
            except ValidationError as e:
                raise from_validation_error(e)

            fields = update.model_dump(exclude_unset=True)
            for key in ("skills", "languages"):
                if key in fields and fields[key] is None:
                    fields[key] = []
            if "name" in fields and not (fields["name"] or "").strip():
                raise ValidationFailed("Name cannot be empty")
            if not fields:
                raise ValidationFailed("Nothing to update")

            await self.gateway.table(PROFILES).update(
                actor.id, {**fields, "updated_at": self.clock()}
            )
        except MarketplaceError as e:
            return OperationResult.fail(e)

        self.provider.update_actor(actor.model_copy(update=fields))
        return OperationResult.ok("Profile updated successfully", id=actor.id)
