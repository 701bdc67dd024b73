# tests/test_user_service.py
import pytest

from taskify.errors import Conflict
from taskify.models import User
from taskify.schemas import ExternalProfile, ProfileUpdate, RegisterRequest
from taskify.security import PasswordHasher
from taskify.services import user_service

from .fakes import FakeNotifier

pytestmark = pytest.mark.anyio

HASHER = PasswordHasher(rounds=4)


@pytest.fixture
def lookup_misses(monkeypatch):
    """Make the pre-write email lookup miss, as when two requests race."""

    async def _miss(session, email):
        return None

    monkeypatch.setattr(user_service, "find_user_by_email", _miss)


def _register(email: str) -> RegisterRequest:
    return RegisterRequest(name="Alice", email=email, password="secret123")


async def test_register_race_on_email_is_a_conflict(db, lookup_misses):
    notifier = FakeNotifier()
    await user_service.register_user(db, _register("alice@example.com"), hasher=HASHER, notifier=notifier)

    with pytest.raises(Conflict, match="User with this email already exists"):
        await user_service.register_user(db, _register("Alice@example.com"), hasher=HASHER, notifier=notifier)
    assert len(notifier.verifications) == 1

    # The session is usable after the failed write.
    await user_service.register_user(db, _register("bob@example.com"), hasher=HASHER, notifier=notifier)


async def test_profile_email_race_is_a_conflict(db, lookup_misses):
    alice = User(name="Alice", email="alice@example.com")
    bob = User(name="Bob", email="bob@example.com")
    db.add_all([alice, bob])
    await db.commit()
    bob_id = bob.id

    with pytest.raises(Conflict, match="Email already in use"):
        await user_service.update_profile(db, bob, ProfileUpdate(email="alice@example.com"))
    assert (await db.get(User, bob_id)).email == "bob@example.com"


async def test_external_identity_race_is_a_conflict(db, lookup_misses):
    db.add(User(name="Alice", email="alice@example.com"))
    await db.commit()

    profile = ExternalProfile(externalId="google-123", name="Alice", email="alice@example.com", avatarUrl="")
    with pytest.raises(Conflict, match="User with this email already exists"):
        await user_service.link_external_identity(db, profile)
