"""
Storage abstraction layer.

All user-record persistence goes through UserStore. Records are JSON-shaped
dicts keyed by user id, using the attribute names the frontend and the
deployed DynamoDB table already use:

    {
        "id": "...",
        "role": "pro",
        "firstName": "...",
        "onboarding": {...},
        "preferences": {...},
        "ownedResources": {"project": ["p1", "p2"]},
        "sharedResources": {"plan": ["x9"]},
    }

AWS Implementation: DynamoDB (storage/dynamodb.py)
Local Implementation: in-memory dict (storage/local.py)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class UserStore(ABC):
    """Key-value store of user records."""

    @abstractmethod
    async def get(self, user_id: str) -> dict[str, Any] | None:
        """Get a record by user id, or None if there isn't one."""
        pass

    @abstractmethod
    async def save(self, user_id: str, record: dict[str, Any]) -> None:
        """Create or replace a whole record."""
        pass

    @abstractmethod
    async def update(self, user_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        """
        Merge top-level attributes into an existing record.

        Returns the record as stored after the update.
        """
        pass

    @abstractmethod
    async def append_unique(
        self,
        user_id: str,
        attribute: str,
        key: str,
        value: str,
    ) -> None:
        """
        Append ``value`` to the list at ``record[attribute][key]``.

        Creates the map and the list when missing. Appending a value that is
        already present is a no-op.
        """
        pass

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Delete a record."""
        pass


class Attributes:
    """User record attribute names."""

    ID = "id"
    ROLE = "role"
    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    JOB_TITLE = "jobTitle"
    COMPANY = "company"
    ONBOARDING = "onboarding"
    PREFERENCES = "preferences"
    OWNED_RESOURCES = "ownedResources"
    SHARED_RESOURCES = "sharedResources"
    UPDATED_AT = "updatedAt"
