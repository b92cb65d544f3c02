"""
Tracking of in-flight collaborator requests.

Lookups and other collaborator calls complete independently of the
branching state. Each request is tied to the row instance that issued
it, so a response that arrives after the row was pruned (or pruned and
rendered again) can be recognised and dropped.
"""

import uuid
from dataclasses import dataclass
from typing import Sequence

from dyn_form.exceptions import StaleRowReference


@dataclass(frozen=True)
class RequestTicket:
    request_id: str
    row_id: int
    field_id: str
    generation: int


class InFlightRequests:
    """Issues request tickets and validates them against the rendered path."""

    def __init__(self) -> None:
        self._generations: dict[int, int] = {}
        self._pending: dict[str, RequestTicket] = {}

    @property
    def pending(self) -> list[RequestTicket]:
        return list(self._pending.values())

    def row_instantiated(self, row_id: int) -> None:
        """A new instance of the row was rendered; older tickets go stale."""
        self._generations[row_id] = self._generations.get(row_id, 0) + 1

    def issue(self, row_id: int, field_id: str) -> RequestTicket:
        ticket = RequestTicket(
            request_id=uuid.uuid4().hex,
            row_id=row_id,
            field_id=field_id,
            generation=self._generations.get(row_id, 0),
        )
        self._pending[ticket.request_id] = ticket
        return ticket

    def check(self, ticket: RequestTicket, current_rows: Sequence[int]) -> None:
        """
        Raises:
            StaleRowReference: If the issuing row instance is gone.
        """
        if (
            ticket.row_id not in current_rows
            or self._generations.get(ticket.row_id, 0) != ticket.generation
        ):
            raise StaleRowReference(ticket.row_id, ticket.field_id)

    def complete(self, ticket: RequestTicket) -> None:
        self._pending.pop(ticket.request_id, None)
