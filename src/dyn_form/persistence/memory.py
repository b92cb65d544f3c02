"""
In-memory persistence collaborator.

Useful for tests and for running the session API without a storage
service. Items are stored per entity with sequential integer ids.
"""

import logging
from itertools import count
from typing import Any

from dyn_form.exceptions import PersistenceError
from dyn_form.models.form_state import FileHandle

logger = logging.getLogger("dyn-form.persistence")


class InMemoryCollaborator:
    """Dict-backed PersistenceCollaborator."""

    def __init__(self) -> None:
        self.entities: dict[str, dict[int, dict[str, Any]]] = {}
        self.attachments: dict[tuple[str, int], list[FileHandle]] = {}
        self._ids: dict[str, count] = {}

    def _items(self, entity: str) -> dict[int, dict[str, Any]]:
        return self.entities.setdefault(entity, {})

    def _get(self, entity: str, item_id: Any) -> dict[str, Any]:
        try:
            return self._items(entity)[int(item_id)]
        except (KeyError, TypeError, ValueError):
            raise PersistenceError(f"No item {item_id!r} in '{entity}'") from None

    async def create(self, entity: str, fields: dict[str, Any]) -> int:
        item_id = next(self._ids.setdefault(entity, count(1)))
        self._items(entity)[item_id] = {**fields, "ID": item_id}
        logger.debug("Created %s item %s", entity, item_id)
        return item_id

    async def update(self, entity: str, item_id: Any, fields: dict[str, Any]) -> None:
        item = self._get(entity, item_id)
        item.update(fields)
        item["ID"] = int(item_id)

    async def fetch(self, entity: str, item_id: Any) -> dict[str, Any]:
        return dict(self._get(entity, item_id))

    async def delete(self, entity: str, item_id: Any) -> None:
        self._get(entity, item_id)
        del self._items(entity)[int(item_id)]
        logger.debug("Deleted %s item %s", entity, item_id)

    async def list_children(
        self, entity: str, parent_entity: str, parent_id: Any
    ) -> list[dict[str, Any]]:
        return [
            dict(item)
            for item in self._items(entity).values()
            if str(item.get(parent_entity)) == str(parent_id)
        ]

    async def list_items(self, entity: str) -> list[dict[str, Any]]:
        return [dict(item) for item in self._items(entity).values()]

    async def attach(self, entity: str, item_id: Any, file: FileHandle) -> None:
        self._get(entity, item_id)
        self.attachments.setdefault((entity, int(item_id)), []).append(file)
