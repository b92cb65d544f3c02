"""
Option lookup for select fields.

Options are built from items of a collaborator entity by joining the
values of chosen columns with a space.
"""

import logging
from typing import Sequence

from dyn_form.exceptions import PersistenceError
from dyn_form.persistence.collaborator import PersistenceCollaborator
from dyn_form.session import FormSession

logger = logging.getLogger("dyn-form.lookup")


class LookupService:
    """
    Usage:
        lookup = LookupService(collaborator)
        await lookup.populate_options(session, "manager", "Employees", ["FirstName", "LastName"])
    """

    def __init__(self, collaborator: PersistenceCollaborator):
        self.collaborator = collaborator

    async def get_concatenated_options(self, entity: str, columns: Sequence[str]) -> list[str]:
        """One option per item: the named column values joined by a space."""
        items = await self.collaborator.list_items(entity)
        return [
            " ".join(str(item.get(column) or "") for column in columns).strip()
            for item in items
        ]

    async def populate_options(
        self,
        session: FormSession,
        field_id: str,
        entity: str,
        columns: Sequence[str],
    ) -> bool:
        """
        Fetch options and apply them to a live field.

        The response is dropped if the field's row was pruned while the
        request was in flight. Collaborator failures are logged and leave
        the field untouched.

        Returns:
            True if the options were applied.
        """
        ticket = session.begin_request(field_id)
        try:
            options = await self.get_concatenated_options(entity, columns)
        except PersistenceError as e:
            logger.error(f"Lookup for {field_id} from {entity} failed: {e}")
            session.requests.complete(ticket)
            return False

        return session.apply_response(ticket, lambda field: field.set_options(options))
