"""Household membership, profiles and account settings."""

from typing import Protocol

from .cache import QueryCache
from .errors import NoHouseholdError, RecordNotFoundError, ValidationError, require_text
from .gateway import Collection, GatewayError, GatewayProtocol, eq, in_
from .logging import get_logger
from .models import Household, HouseholdMember, MemberProfile, MemberRole, Profile

log = get_logger("household")

MIN_PASSWORD_LENGTH = 6


class AuthProvider(Protocol):
    """The part of the hosted auth service the settings screen needs."""

    def update_password(self, new_password: str) -> None: ...


class MemberError(Exception):
    """Raised when a membership change is not allowed."""


def validate_new_password(new_password: str, confirm_password: str) -> None:
    """Local password checks, run before contacting the auth service.

    Raises:
        ValidationError: If the password is too short or the confirmation differs
    """
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if new_password != confirm_password:
        raise ValidationError("Passwords do not match")


def change_password(auth: AuthProvider | None, new_password: str, confirm_password: str) -> None:
    """Validate locally, then ask the auth service to change the password.

    Raises:
        ValidationError: If local checks fail; the auth service is not called
        GatewayError: If no auth service is available for this backend
    """
    validate_new_password(new_password, confirm_password)
    if auth is None:
        raise GatewayError("Password changes need the hosted backend; sign in first")
    auth.update_password(new_password)


def find_household_id(gateway: GatewayProtocol, user_id: str | None) -> str:
    """Household the user belongs to.

    Raises:
        NoHouseholdError: If the user has no membership
    """
    if not user_id:
        raise NoHouseholdError(None)
    rows = gateway.select(
        Collection.HOUSEHOLD_MEMBERS, [eq("user_id", user_id)], columns=["household_id"], limit=1
    )
    if not rows:
        raise NoHouseholdError(user_id)
    return rows[0]["household_id"]


def find_profile(gateway: GatewayProtocol, email: str) -> Profile | None:
    """Profile registered with this email, if any."""
    email = require_text(email, "Email").lower()
    rows = gateway.select(Collection.PROFILES, [eq("email", email)], limit=1)
    return Profile.model_validate(rows[0]) if rows else None


def register_profile(gateway: GatewayProtocol, email: str, name: str | None = None) -> Profile:
    """Return the profile for this email, creating it when missing."""
    profile = find_profile(gateway, email)
    if profile is not None:
        return profile
    return Profile.model_validate(
        gateway.insert(Collection.PROFILES, [{"email": email.strip().lower(), "name": name}])[0]
    )


def create_household(
    gateway: GatewayProtocol, name: str, email: str, user_name: str | None = None
) -> tuple[Household, Profile]:
    """Create a household owned by the account with this email.

    The profile is created if it does not exist yet. Hosted deployments do
    this server-side at sign-up; local backends call it from ``init``.
    """
    name = require_text(name, "Household name")
    profile = register_profile(gateway, email, user_name)

    household = Household.model_validate(gateway.insert(Collection.HOUSEHOLDS, [{"name": name}])[0])
    gateway.insert(
        Collection.HOUSEHOLD_MEMBERS,
        [{"household_id": household.id, "user_id": profile.id, "role": MemberRole.OWNER}],
    )
    log.info(f"Created household {household.name!r} owned by {profile.email}")
    return household, profile


class HouseholdManager:
    """Manages a household's details and members."""

    def __init__(
        self,
        gateway: GatewayProtocol,
        household_id: str,
        user_id: str | None = None,
        cache: QueryCache | None = None,
        auth: AuthProvider | None = None,
    ):
        self.gateway = gateway
        self.household_id = household_id
        self.user_id = user_id
        self.cache = cache or QueryCache()
        self.auth = auth

    def get_household(self) -> Household:
        rows = self.gateway.select(Collection.HOUSEHOLDS, [eq("id", self.household_id)], limit=1)
        if not rows:
            raise RecordNotFoundError("Household", self.household_id)
        return Household.model_validate(rows[0])

    def get_profile(self, user_id: str | None = None) -> Profile | None:
        user_id = user_id or self.user_id
        if not user_id:
            return None
        rows = self.gateway.select(Collection.PROFILES, [eq("id", user_id)], limit=1)
        return Profile.model_validate(rows[0]) if rows else None

    def get_members(self) -> list[MemberProfile]:
        """Members of the household joined with their profiles."""
        return self.cache.get_or_fetch(
            ("household-members", self.household_id),
            [Collection.HOUSEHOLD_MEMBERS, Collection.PROFILES],
            self._fetch_members,
        )

    def _fetch_members(self) -> list[MemberProfile]:
        members = [
            HouseholdMember.model_validate(row)
            for row in self.gateway.select(
                Collection.HOUSEHOLD_MEMBERS, [eq("household_id", self.household_id)]
            )
        ]
        if not members:
            return []

        profiles = {
            row["id"]: Profile.model_validate(row)
            for row in self.gateway.select(
                Collection.PROFILES, [in_("id", [m.user_id for m in members])]
            )
        }

        result = []
        for member in members:
            profile = profiles.get(member.user_id)
            result.append(
                MemberProfile(
                    user_id=member.user_id,
                    role=member.role,
                    joined_at=member.joined_at,
                    name=profile.name if profile else None,
                    email=profile.email if profile else None,
                )
            )
        return result

    def is_owner(self, user_id: str | None = None) -> bool:
        user_id = user_id or self.user_id
        return any(m.user_id == user_id and m.role == MemberRole.OWNER for m in self.get_members())

    def _require_owner(self, action: str) -> None:
        if not self.is_owner():
            raise MemberError(f"Only the household owner can {action}")

    def add_member(self, email: str) -> Profile:
        """Invite an existing account into the household by email.

        Raises:
            MemberError: If the acting user is not the owner, no account has
                this email, or it is already a member
        """
        self._require_owner("invite members")
        profile = find_profile(self.gateway, email)
        if profile is None:
            raise MemberError("No user found with that email. They need to sign up first!")

        existing = self.gateway.select(
            Collection.HOUSEHOLD_MEMBERS,
            [eq("household_id", self.household_id), eq("user_id", profile.id)],
            limit=1,
        )
        if existing:
            raise MemberError("This user is already a member of your household!")

        self.gateway.insert(
            Collection.HOUSEHOLD_MEMBERS,
            [{"household_id": self.household_id, "user_id": profile.id, "role": MemberRole.MEMBER}],
        )
        self.cache.invalidate(Collection.HOUSEHOLD_MEMBERS)
        log.info(f"Added {profile.email} to household {self.household_id}")
        return profile

    def remove_member(self, user_id: str) -> None:
        """Remove a member from the household.

        Raises:
            MemberError: If the acting user is not the owner or removes themselves
            RecordNotFoundError: If the user is not a member
        """
        self._require_owner("remove members")
        if user_id == self.user_id:
            raise MemberError("You can't remove yourself from the household")
        if not any(m.user_id == user_id for m in self.get_members()):
            raise RecordNotFoundError("Member", user_id)

        self.gateway.delete(
            Collection.HOUSEHOLD_MEMBERS,
            [eq("household_id", self.household_id), eq("user_id", user_id)],
        )
        self.cache.invalidate(Collection.HOUSEHOLD_MEMBERS)

    def change_password(self, new_password: str, confirm_password: str) -> None:
        change_password(self.auth, new_password, confirm_password)
