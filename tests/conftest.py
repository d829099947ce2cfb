"""Shared fixtures."""

import copy

import pytest

from plancraft.auth import set_role_catalog
from plancraft.core.events import EventBus
from plancraft.storage import InMemoryUserStore


USERS = {
    "user_alice": {
        "role": "user",
        "firstName": "Alice",
        "lastName": "Ng",
        "ownedResources": {"project": ["p1"]},
        "sharedResources": {"project": ["p9"]},
    },
    "user_paul": {"role": "pro", "firstName": "Paul", "lastName": "Reyes"},
    "user_tess": {
        "role": "team",
        "firstName": "Tess",
        "lastName": "Okafor",
        "ownedResources": {"project": ["t1"]},
    },
    "user_root": {"role": "admin", "firstName": "Ada", "lastName": "Root"},
}


@pytest.fixture
def users():
    """Seed records, one user per role tier."""
    return copy.deepcopy(USERS)


@pytest.fixture
def store(users):
    """In-memory store seeded with the users above."""
    return InMemoryUserStore(users)


@pytest.fixture
def event_bus():
    """Fresh event bus."""
    return EventBus()


@pytest.fixture(autouse=True)
def builtin_roles():
    """Every test starts and ends on the built-in role catalog."""
    set_role_catalog(None)
    yield
    set_role_catalog(None)
