"""
Storage abstractions.

AWS Integration Points:
- UserStore → DynamoDB users table
"""

from __future__ import annotations

from plancraft.config import Settings, get_settings
from plancraft.storage.base import Attributes, UserStore
from plancraft.storage.local import InMemoryUserStore


def create_user_store(settings: Settings | None = None) -> UserStore:
    """Create the user store the settings ask for."""
    settings = settings or get_settings()

    if settings.storage_backend == "dynamodb":
        from plancraft.storage.dynamodb import DynamoUserStore

        return DynamoUserStore(
            table_name=settings.users_table,
            region_name=settings.aws_region,
            endpoint_url=settings.dynamodb_endpoint_url or None,
        )

    if settings.storage_backend == "memory":
        return InMemoryUserStore()

    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")


__all__ = [
    "Attributes",
    "UserStore",
    "InMemoryUserStore",
    "create_user_store",
]
