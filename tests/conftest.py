"""Shared fixtures for the policy core tests.

Every test gets a fresh in-memory store and a freshly wired core built
from default settings, so point values always come from the configured
policy rather than from literals in the tests.
"""

import pytest

from community_trust.core.config import Settings, TrustPointsPolicy
from community_trust.models import Actor, Role
from community_trust.schemas import CreateListingInput, VerifyListingInput
from community_trust.services import PolicyCore
from community_trust.stores import InMemoryStore


# =============================================================================
# CONFIGURATION
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from any local .env file."""
    return Settings(_env_file=None, store_backend="memory")


@pytest.fixture
def policy(settings: Settings) -> TrustPointsPolicy:
    return settings.trust_points


# =============================================================================
# CORE
# =============================================================================


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def core(store: InMemoryStore, settings: Settings) -> PolicyCore:
    return PolicyCore(store, settings)


# =============================================================================
# ACTORS
# =============================================================================


@pytest.fixture
def owner() -> Actor:
    """A plain user who submits listings."""
    return Actor(user_id="user-owner", role=Role.USER)


@pytest.fixture
def voter() -> Actor:
    return Actor(user_id="user-voter", role=Role.USER)


@pytest.fixture
def author() -> Actor:
    return Actor(user_id="user-author", role=Role.AUTHOR)


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id="user-admin", role=Role.ADMIN)


@pytest.fixture
def super_admin() -> Actor:
    return Actor(user_id="user-super", role=Role.SUPER_ADMIN)


# =============================================================================
# DATA
# =============================================================================


@pytest.fixture
def listing_input() -> CreateListingInput:
    return CreateListingInput(
        game_id="game-zelda",
        device_id="device-retroid-pocket-4",
        emulator_id="emulator-yuzu",
        performance_id=3,
        notes="Stable 30fps with resolution scaling at 1x.",
        custom_field_values=[
            {"custom_field_definition_id": "driver", "value": "Turnip 24.1"},
        ],
    )


@pytest.fixture
def create_listing(core: PolicyCore, owner: Actor, listing_input: CreateListingInput):
    """Factory: create a PENDING listing owned by ``owner``."""

    async def _create(by: Actor | None = None):
        return await core.workflow.create(listing_input, by or owner)

    return _create


@pytest.fixture
def verify():
    def _verify(listing_id: str, notes: str | None = None) -> VerifyListingInput:
        return VerifyListingInput(listing_id=listing_id, notes=notes)

    return _verify
