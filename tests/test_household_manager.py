"""Tests for household membership and account settings."""

import pytest

from household_hub.errors import NoHouseholdError, RecordNotFoundError, ValidationError
from household_hub.gateway import Collection, GatewayError
from household_hub.household_manager import (
    HouseholdManager,
    MemberError,
    change_password,
    create_household,
    find_household_id,
    find_profile,
    register_profile,
    validate_new_password,
)
from household_hub.models import MemberRole


class FakeAuth:
    """Records password changes instead of calling the auth service."""

    def __init__(self):
        self.passwords = []

    def update_password(self, new_password):
        self.passwords.append(new_password)


class TestCreateHousehold:
    """Tests for setting up a household."""

    def test_owner_membership(self, gateway):
        home, alice = create_household(gateway, "Home", "Alice@Example.com", "Alice")

        assert home.name == "Home"
        assert alice.email == "alice@example.com"
        assert alice.name == "Alice"
        [member] = gateway.select(Collection.HOUSEHOLD_MEMBERS)
        assert member["household_id"] == home.id
        assert member["user_id"] == alice.id
        assert member["role"] == "owner"

    def test_reuses_existing_profile(self, gateway):
        bob = register_profile(gateway, "bob@example.com", "Bob")

        _, owner = create_household(gateway, "Cabin", "BOB@example.com")

        assert owner.id == bob.id
        assert len(gateway.select(Collection.PROFILES)) == 1

    def test_empty_name_rejected(self, gateway):
        with pytest.raises(ValidationError):
            create_household(gateway, " ", "alice@example.com")
        assert gateway.select(Collection.HOUSEHOLDS) == []

    def test_find_household_id(self, gateway, household_id, user_id):
        assert find_household_id(gateway, user_id) == household_id

    def test_find_household_id_without_membership(self, gateway):
        bob = register_profile(gateway, "bob@example.com")

        with pytest.raises(NoHouseholdError, match="not a member"):
            find_household_id(gateway, bob.id)

    def test_find_household_id_without_user(self, gateway):
        with pytest.raises(NoHouseholdError):
            find_household_id(gateway, None)

    def test_find_profile_ignores_case(self, gateway, household):
        assert find_profile(gateway, " ALICE@example.com ").id == household[1].id
        assert find_profile(gateway, "nobody@example.com") is None


class TestMembers:
    """Tests for listing, inviting and removing members."""

    def test_owner_listed_with_profile(self, household_manager, user_id):
        [member] = household_manager.get_members()

        assert member.user_id == user_id
        assert member.role == MemberRole.OWNER
        assert member.name == "Alice"
        assert member.email == "alice@example.com"
        assert household_manager.is_owner()

    def test_get_household(self, household_manager):
        assert household_manager.get_household().name == "Home"

    def test_unknown_household(self, gateway):
        with pytest.raises(RecordNotFoundError):
            HouseholdManager(gateway, "missing").get_household()

    def test_add_member(self, household_manager, gateway):
        register_profile(gateway, "bob@example.com", "Bob")

        profile = household_manager.add_member("Bob@Example.com")

        assert profile.name == "Bob"
        members = household_manager.get_members()
        assert [m.email for m in members] == ["alice@example.com", "bob@example.com"]
        assert members[1].role == MemberRole.MEMBER
        assert not household_manager.is_owner(profile.id)

    def test_add_unknown_email(self, household_manager):
        with pytest.raises(MemberError) as exc_info:
            household_manager.add_member("ghost@example.com")
        assert str(exc_info.value) == "No user found with that email. They need to sign up first!"

    def test_add_existing_member(self, household_manager):
        with pytest.raises(MemberError) as exc_info:
            household_manager.add_member("alice@example.com")
        assert str(exc_info.value) == "This user is already a member of your household!"
        assert len(household_manager.get_members()) == 1

    def test_member_in_another_household_can_join(self, household_manager, gateway):
        create_household(gateway, "Flat", "carol@example.com", "Carol")

        household_manager.add_member("carol@example.com")

        assert len(household_manager.get_members()) == 2

    def test_remove_member(self, household_manager, gateway):
        register_profile(gateway, "bob@example.com", "Bob")
        bob = household_manager.add_member("bob@example.com")

        household_manager.remove_member(bob.id)

        assert [m.name for m in household_manager.get_members()] == ["Alice"]

    def test_remove_non_member(self, household_manager):
        with pytest.raises(RecordNotFoundError):
            household_manager.remove_member("stranger")

    def test_owner_cannot_remove_themselves(self, household_manager, user_id):
        with pytest.raises(MemberError) as exc_info:
            household_manager.remove_member(user_id)
        assert str(exc_info.value) == "You can't remove yourself from the household"
        assert household_manager.is_owner()

    def test_member_cannot_invite_or_remove(self, household_manager, gateway, household_id, user_id):
        register_profile(gateway, "bob@example.com", "Bob")
        register_profile(gateway, "carol@example.com", "Carol")
        bob = household_manager.add_member("bob@example.com")
        as_bob = HouseholdManager(gateway, household_id, bob.id)

        with pytest.raises(MemberError, match="Only the household owner can invite members"):
            as_bob.add_member("carol@example.com")
        with pytest.raises(MemberError, match="Only the household owner can remove members"):
            as_bob.remove_member(user_id)

        members = household_manager.get_members()
        assert [m.email for m in members] == ["alice@example.com", "bob@example.com"]
        assert members[0].role == MemberRole.OWNER

    def test_without_acting_user(self, gateway, household_id):
        with pytest.raises(MemberError):
            HouseholdManager(gateway, household_id).add_member("alice@example.com")


class TestPasswords:
    """Tests for password validation and change."""

    def test_too_short(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_new_password("abc", "abc")
        assert str(exc_info.value) == "Password must be at least 6 characters"

    def test_mismatch(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_new_password("secret1", "secret2")
        assert str(exc_info.value) == "Passwords do not match"

    def test_valid(self):
        validate_new_password("secret1", "secret1")

    def test_change_password_calls_auth(self):
        auth = FakeAuth()

        change_password(auth, "secret1", "secret1")

        assert auth.passwords == ["secret1"]

    def test_invalid_password_never_reaches_auth(self):
        auth = FakeAuth()

        with pytest.raises(ValidationError):
            change_password(auth, "short", "short")
        assert auth.passwords == []

    def test_without_auth_service(self):
        with pytest.raises(GatewayError):
            change_password(None, "secret1", "secret1")

    def test_manager_delegates(self, gateway, household_id, user_id):
        auth = FakeAuth()
        manager = HouseholdManager(gateway, household_id, user_id, auth=auth)

        manager.change_password("newsecret", "newsecret")

        assert auth.passwords == ["newsecret"]
