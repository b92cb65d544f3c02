"""
Persistence collaborator interface.

A collaborator stores items in named entities (tables, lists, collections).
Form values go to a parent entity; table rows go to child entities that
reference their parent item through a lookup column named after the
parent entity.
"""

from typing import Any, Protocol

from dyn_form.models.form_state import FileHandle


class PersistenceCollaborator(Protocol):
    """Async storage backend used by FormSubmitter and LookupService."""

    async def create(self, entity: str, fields: dict[str, Any]) -> int:
        """Create an item and return its id."""

    async def update(self, entity: str, item_id: Any, fields: dict[str, Any]) -> None:
        """Overwrite the given fields of an existing item."""

    async def fetch(self, entity: str, item_id: Any) -> dict[str, Any]:
        """Return one item, including its ``ID``."""

    async def delete(self, entity: str, item_id: Any) -> None:
        """Remove one item."""

    async def list_children(
        self, entity: str, parent_entity: str, parent_id: Any
    ) -> list[dict[str, Any]]:
        """Items of ``entity`` whose ``parent_entity`` column equals ``parent_id``."""

    async def list_items(self, entity: str) -> list[dict[str, Any]]:
        """Every item of ``entity``."""

    async def attach(self, entity: str, item_id: Any, file: FileHandle) -> None:
        """Attach a file to an item."""
