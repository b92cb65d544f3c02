"""
Submission orchestration between a FormSession and a collaborator.

Scalar values and the branch history go to one parent item. Every table
field maps to a child entity whose items point back at the parent through
a lookup column named after the parent entity. File values become
attachments of the parent item.
"""

import logging
from typing import Any

from dyn_form.engine.table_widget import IDENTITY_ALIASES
from dyn_form.exceptions import ValidationFailed
from dyn_form.models.form_state import FileHandle
from dyn_form.models.row_config import FieldType
from dyn_form.persistence.collaborator import PersistenceCollaborator
from dyn_form.session import FormSession

logger = logging.getLogger("dyn-form.persistence")


class FormSubmitter:
    """
    Saves and reloads form sessions.

    Usage:
        submitter = FormSubmitter(collaborator, "Requests", {"items": "RequestItems"})
        item_id = await submitter.submit_form(session)
        await submitter.load_form(FormSession(rows), item_id)
    """

    def __init__(
        self,
        collaborator: PersistenceCollaborator,
        parent_entity: str,
        child_entities: dict[str, str] | None = None,
    ):
        """
        Args:
            collaborator: Storage backend.
            parent_entity: Entity holding one item per submitted form.
            child_entities: Table field id -> entity holding its rows.
        """
        self.collaborator = collaborator
        self.parent_entity = parent_entity
        self.child_entities = child_entities or {}

    async def submit_form(self, session: FormSession, item_id: Any = None) -> Any:
        """
        Validate and persist a session.

        Args:
            session: The session to save.
            item_id: Existing parent item to update; None creates one.

        Returns:
            The parent item id.

        Raises:
            ValidationFailed: If a live field is missing or invalid.
            PersistenceError: If the collaborator fails.
        """
        result = session.validate()
        if not result.is_valid:
            logger.info("Submission blocked by %d validation error(s)", result.error_count)
            raise ValidationFailed(result)

        bag = session.submit()
        history_key = session.config.branch_history_key
        parent_fields: dict[str, Any] = {history_key: bag[history_key]}
        tables: dict[str, dict[str, Any]] = {}
        files: list[FileHandle] = []

        for field in session.live_fields():
            value = bag[field.id]
            if field.type == FieldType.TABLE:
                tables[field.id] = value
            elif field.type == FieldType.FILE:
                if isinstance(value, FileHandle):
                    files.append(value)
                    parent_fields[field.id] = value.name
            else:
                parent_fields[field.id] = value

        if item_id is None:
            item_id = await self.collaborator.create(self.parent_entity, parent_fields)
            logger.info("Created %s item %s", self.parent_entity, item_id)
        else:
            await self.collaborator.update(self.parent_entity, item_id, parent_fields)
            logger.info("Updated %s item %s", self.parent_entity, item_id)

        for field_id, table_value in tables.items():
            entity = self.child_entities.get(field_id)
            if entity is None:
                logger.warning("Table %s has no child entity; rows not saved", field_id)
                continue
            await self._save_rows(entity, item_id, table_value, session.config.identity_key)

        for file in files:
            await self.collaborator.attach(self.parent_entity, item_id, file)
            logger.debug("Attached %s to %s item %s", file.name, self.parent_entity, item_id)

        return item_id

    async def _save_rows(
        self, entity: str, parent_id: Any, table_value: dict[str, Any], identity_key: str
    ) -> None:
        identity_keys = (identity_key, *IDENTITY_ALIASES)
        for row_object in table_value["rows"]:
            identity = next(
                (row_object[k] for k in identity_keys if row_object.get(k) not in (None, "")),
                None,
            )
            fields = {k: v for k, v in row_object.items() if k not in identity_keys}
            fields[self.parent_entity] = parent_id
            if identity is None:
                await self.collaborator.create(entity, fields)
            else:
                await self.collaborator.update(entity, identity, fields)

        for identity in table_value["deletedIds"]:
            await self.collaborator.delete(entity, identity)

        logger.info(
            "Saved %d row(s) to %s, deleted %d",
            len(table_value["rows"]), entity, len(table_value["deletedIds"]),
        )

    async def load_form(self, session: FormSession, item_id: Any) -> dict[str, Any]:
        """
        Fetch a saved form and populate the session with it.

        Returns:
            The value bag handed to ``session.populate``.
        """
        item = await self.collaborator.fetch(self.parent_entity, item_id)
        bag = {key: value for key, value in item.items() if value not in (None, "")}

        for field_id, entity in self.child_entities.items():
            rows = await self.collaborator.list_children(entity, self.parent_entity, item_id)
            bag[field_id] = [
                {k: v for k, v in row.items() if k != self.parent_entity} for row in rows
            ]

        session.populate(bag)
        logger.info("Loaded %s item %s", self.parent_entity, item_id)
        return bag
