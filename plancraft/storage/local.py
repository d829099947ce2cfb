"""
In-memory storage for development and tests.
"""

from __future__ import annotations

import copy
from typing import Any

from plancraft.core.utils import utc_now_iso
from plancraft.storage.base import Attributes, UserStore


class InMemoryUserStore(UserStore):
    """
    Dict-backed user store.

    Records are deep-copied on the way in and out so callers can never
    mutate stored state by accident.
    """

    def __init__(self, records: dict[str, dict[str, Any]] | None = None):
        self._records: dict[str, dict[str, Any]] = {}
        for user_id, record in (records or {}).items():
            self._records[user_id] = {**copy.deepcopy(record), Attributes.ID: user_id}

    async def get(self, user_id: str) -> dict[str, Any] | None:
        record = self._records.get(user_id)
        return copy.deepcopy(record) if record is not None else None

    async def save(self, user_id: str, record: dict[str, Any]) -> None:
        self._records[user_id] = {
            **copy.deepcopy(record),
            Attributes.ID: user_id,
            Attributes.UPDATED_AT: utc_now_iso(),
        }

    async def update(self, user_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        # Upsert, like a DynamoDB UpdateItem on a missing key
        record = self._records.setdefault(user_id, {Attributes.ID: user_id})
        record.update(copy.deepcopy(updates))
        record[Attributes.UPDATED_AT] = utc_now_iso()
        return copy.deepcopy(record)

    async def append_unique(
        self,
        user_id: str,
        attribute: str,
        key: str,
        value: str,
    ) -> None:
        record = self._records.setdefault(user_id, {Attributes.ID: user_id})
        values = record.setdefault(attribute, {}).setdefault(key, [])
        if value not in values:
            values.append(value)
            record[Attributes.UPDATED_AT] = utc_now_iso()

    async def delete(self, user_id: str) -> bool:
        return self._records.pop(user_id, None) is not None
