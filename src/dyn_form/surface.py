"""
Render surface abstraction.

The session tells a surface which rows to show and hide; it never reads
anything back except the list of rows the surface currently shows.
"""

from typing import Protocol


class RenderSurface(Protocol):
    """What the session needs from a presentation layer."""

    def create_container(self, row_id: int, field_ids: list[str]) -> None:
        """Show a row holding the given fields."""

    def remove_row(self, row_id: int) -> None:
        """Remove a row from display."""

    def visible_rows(self) -> list[int]:
        """Row ids currently displayed, in order."""


class NullSurface:
    """Surface that renders nothing."""

    def create_container(self, row_id: int, field_ids: list[str]) -> None:
        pass

    def remove_row(self, row_id: int) -> None:
        pass

    def visible_rows(self) -> list[int]:
        return []


class RecordingSurface:
    """Keeps displayed rows in memory; used by tests and the session API."""

    def __init__(self) -> None:
        self.containers: dict[int, list[str]] = {}
        self.removed: list[int] = []

    def create_container(self, row_id: int, field_ids: list[str]) -> None:
        self.containers[row_id] = list(field_ids)

    def remove_row(self, row_id: int) -> None:
        if self.containers.pop(row_id, None) is not None:
            self.removed.append(row_id)

    def visible_rows(self) -> list[int]:
        return list(self.containers)
