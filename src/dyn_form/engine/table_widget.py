"""
Repeating-row table sub-model used by table-typed fields.

The widget owns its rows, the identities of persisted rows the user has
deleted, and the sort / filter / pagination view state. Filtering and
pagination never remove data: they only decide which rows are shown.

CSV text uses a bare comma delimiter with no quoting, so a cell value
containing a comma shifts the remaining cells of its line on both export
and import.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import count
from typing import Any, Callable, Literal

from dyn_form.config import FormEngineConfig, get_config
from dyn_form.exceptions import FormEngineError, SchemaMismatch, UnknownColumnError
from dyn_form.models.row_config import ColumnConfig, TableConfig

logger = logging.getLogger("dyn-form.table")

CSV_DELIMITER = ","
IDENTITY_ALIASES = ("ID", "Id", "id")


@dataclass
class TableRow:
    """One row entry; ``identity`` is set for rows already persisted."""

    key: int
    values: dict[str, Any]
    identity: str | None = None

    @property
    def is_tagged(self) -> bool:
        return self.identity is not None


@dataclass
class SortState:
    column: str
    direction: Literal["asc", "desc"]


@dataclass
class PaginationState:
    rows_per_page: int
    current_page: int = 1


@dataclass
class CsvImportResult:
    imported: int
    ignored_headers: list[str] = field(default_factory=list)


def _to_identity(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _to_number(value: Any) -> float | None:
    """Numeric cell value; blank cells count as 0, unparsable ones as None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_instant(value: Any) -> datetime | None:
    """Calendar instant of a date cell, normalised to naive UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value or "").strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _cell_text(value: Any) -> str:
    return "" if value is None else str(value)


def _text_key(value: Any) -> str:
    return _cell_text(value).casefold()


def _bounds(criterion: Any, parse: Callable[[Any], Any], kind: str) -> tuple[Any, Any]:
    if not isinstance(criterion, (list, tuple)) or len(criterion) != 2:
        raise ValueError(f"A {kind} filter takes a [start, end] pair, got {criterion!r}")
    parsed = []
    for bound in criterion:
        if bound is None or bound == "":
            parsed.append(None)
            continue
        value = parse(bound)
        if value is None:
            raise ValueError(f"Invalid {kind} bound: {bound!r}")
        parsed.append(value)
    return parsed[0], parsed[1]


class TableWidget:
    """
    Row model behind a table field.

    Usage:
        table = TableWidget("items", table_config)
        row = table.add_row(identity="42")
        table.update_cell(row, "Qty", "3")
        table.delete_row(row)           # "42" lands in deleted_ids
        table.filter("Name", "bolt")    # case-insensitive substring
        csv_text = table.export_rows()
    """

    def __init__(
        self,
        field_id: str,
        table_config: TableConfig,
        config: FormEngineConfig | None = None,
    ):
        self.field_id = field_id
        self.table_config = table_config
        self._config = config or get_config()
        self._keys = count(1)

        self.rows: list[TableRow] = []
        # Insertion-ordered set; never shrinks.
        self._deleted: dict[str, None] = {}
        self.sort_state: SortState | None = None
        self.filters: dict[str, Callable[[Any], bool]] = {}
        self.filter_criteria: dict[str, Any] = {}
        self.pagination: PaginationState | None = (
            PaginationState(rows_per_page=self._config.rows_per_page)
            if table_config.pagination
            else None
        )

        if self._config.table_starts_with_blank_row:
            self.add_row()

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    @property
    def headers(self) -> list[str]:
        return self.table_config.headers

    def _column(self, header: str) -> ColumnConfig:
        column = self.table_config.column(header)
        if column is None:
            raise UnknownColumnError(header)
        return column

    def _defaults(self) -> dict[str, Any]:
        return {
            column.header: column.options[0].value if column.options else ""
            for column in self.table_config.columns
        }

    # ------------------------------------------------------------------
    # Row lifecycle
    # ------------------------------------------------------------------

    @property
    def deleted_ids(self) -> list[str]:
        return list(self._deleted)

    def get_row(self, key: int) -> TableRow:
        for row in self.rows:
            if row.key == key:
                return row
        raise KeyError(f"Table '{self.field_id}' has no row {key}")

    def _resolve(self, row: TableRow | int) -> TableRow:
        return self.get_row(row.key if isinstance(row, TableRow) else row)

    def add_row(
        self,
        identity: Any = None,
        values: dict[str, Any] | None = None,
    ) -> TableRow:
        """Append a row; rows with an identity are treated as persisted."""
        row_values = self._defaults()
        for header, value in (values or {}).items():
            self._column(header)
            row_values[header] = value

        row = TableRow(key=next(self._keys), values=row_values, identity=_to_identity(identity))
        self.rows.append(row)
        self._clamp_page()
        return row

    def delete_row(self, row: TableRow | int) -> None:
        """Remove a row; a persisted row's identity is remembered for deletion."""
        entry = self._resolve(row)
        self.rows.remove(entry)
        if entry.identity is not None:
            self._deleted[entry.identity] = None
            logger.debug("Table %s: marked row %s for deletion", self.field_id, entry.identity)
        self._clamp_page()

    def update_cell(self, row: TableRow | int, header: str, value: Any) -> None:
        self._column(header)
        self._resolve(row).values[header] = value

    # ------------------------------------------------------------------
    # Sorting
    # ------------------------------------------------------------------

    def sort(self, header: str) -> SortState:
        """
        Sort rows by a column.

        The first sort on a column is ascending; sorting the same column
        again flips the direction. Number and date columns compare by
        value; cells that cannot be parsed always sort last. Other columns
        compare case-insensitively. Equal keys keep their relative order.
        """
        column = self._column(header)
        if self.sort_state and self.sort_state.column == header:
            direction = "desc" if self.sort_state.direction == "asc" else "asc"
        else:
            direction = "asc"

        if column.type == "number":
            parse: Callable[[Any], Any] = _to_number
        elif column.type == "date":
            parse = _to_instant
        else:
            parse = _text_key

        keyed = [(parse(row.values.get(header)), row) for row in self.rows]
        valid = [item for item in keyed if item[0] is not None]
        invalid = [row for key, row in keyed if key is None]
        valid.sort(key=lambda item: item[0], reverse=direction == "desc")
        self.rows = [row for _, row in valid] + invalid

        self.sort_state = SortState(column=header, direction=direction)
        return self.sort_state

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------

    def filter(self, header: str, criterion: Any) -> None:
        """
        Filter rows by a column.

        Text columns take a substring (case-insensitive). Number and date
        columns take a ``[start, end]`` pair with optional, inclusive
        bounds. An empty criterion clears the column's filter.
        """
        column = self._column(header)

        if column.type == "number":
            low, high = _bounds(criterion, _to_number, "number")
            if low is None and high is None:
                self.clear_filter(header)
                return

            def predicate(value: Any) -> bool:
                number = _to_number(value)
                if number is None:
                    return False
                return (low is None or number >= low) and (high is None or number <= high)

        elif column.type == "date":
            start, end = _bounds(criterion, _to_instant, "date")
            if start is None and end is None:
                self.clear_filter(header)
                return

            def predicate(value: Any) -> bool:
                instant = _to_instant(value)
                if instant is None:
                    return False
                return (start is None or instant >= start) and (end is None or instant <= end)

        else:
            needle = _cell_text(criterion).casefold()
            if not needle:
                self.clear_filter(header)
                return

            def predicate(value: Any) -> bool:
                return needle in _cell_text(value).casefold()

        self.filters[header] = predicate
        self.filter_criteria[header] = criterion
        self._clamp_page()

    def clear_filter(self, header: str) -> None:
        self._column(header)
        self.filters.pop(header, None)
        self.filter_criteria.pop(header, None)
        self._clamp_page()

    def clear_filters(self) -> None:
        self.filters.clear()
        self.filter_criteria.clear()
        self._clamp_page()

    def visible_rows(self) -> list[TableRow]:
        """Rows passing every active filter, in display order."""
        return [
            row
            for row in self.rows
            if all(predicate(row.values.get(header)) for header, predicate in self.filters.items())
        ]

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    @property
    def total_pages(self) -> int:
        if self.pagination is None:
            return 1
        return math.ceil(len(self.visible_rows()) / self.pagination.rows_per_page)

    def _clamp_page(self) -> None:
        if self.pagination is None:
            return
        last = max(self.total_pages, 1)
        self.pagination.current_page = min(max(self.pagination.current_page, 1), last)

    def _require_pagination(self) -> PaginationState:
        if self.pagination is None:
            raise FormEngineError(f"Table '{self.field_id}' is not paginated")
        return self.pagination

    def go_to_page(self, page: int) -> int:
        """Show a page; out-of-range pages clamp to the nearest valid one."""
        pagination = self._require_pagination()
        pagination.current_page = page
        self._clamp_page()
        return pagination.current_page

    def set_rows_per_page(self, rows_per_page: int) -> None:
        pagination = self._require_pagination()
        if rows_per_page not in self._config.rows_per_page_options:
            raise ValueError(
                f"rows_per_page must be one of {list(self._config.rows_per_page_options)}"
            )
        pagination.rows_per_page = rows_per_page
        pagination.current_page = 1

    def page_rows(self) -> list[TableRow]:
        """Rows on the current page, or every visible row when not paginated."""
        visible = self.visible_rows()
        if self.pagination is None:
            return visible
        start = (self.pagination.current_page - 1) * self.pagination.rows_per_page
        return visible[start:start + self.pagination.rows_per_page]

    # ------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------

    @property
    def export_filename(self) -> str:
        return f"{self.field_id}_export.csv"

    def export_rows(self) -> str:
        """Header line plus one line per visible row, values verbatim."""
        lines = [CSV_DELIMITER.join(self.headers)]
        for row in self.visible_rows():
            lines.append(
                CSV_DELIMITER.join(_cell_text(row.values.get(header)) for header in self.headers)
            )
        return "\n".join(lines)

    def import_rows(self, text: str) -> CsvImportResult:
        """
        Replace every row with the contents of CSV text.

        The first line names the columns; cells are mapped by header name.
        Blank lines are skipped. Identities of replaced persisted rows are
        added to ``deleted_ids``.

        Raises:
            SchemaMismatch: If a configured header is missing. The table is
                left unchanged.
        """
        lines = [[cell.strip() for cell in line.split(CSV_DELIMITER)] for line in text.split("\n")]
        csv_headers = lines[0]

        missing = [header for header in self.headers if header not in csv_headers]
        if missing:
            logger.warning("Table %s: CSV import rejected, missing %s", self.field_id, missing)
            raise SchemaMismatch(missing)

        for row in self.rows:
            if row.identity is not None:
                self._deleted[row.identity] = None
        self.rows = []

        imported = 0
        for cells in lines[1:]:
            if len(cells) == 1 and cells[0] == "":
                continue
            values = {
                header: cells[index] if index < len(cells) else ""
                for index, header in enumerate(csv_headers)
                if header in self.headers
            }
            self.add_row(values=values)
            imported += 1

        self._clamp_page()
        ignored = [h for h in csv_headers if h and h not in self.headers]
        logger.info("Table %s: imported %d row(s) from CSV", self.field_id, imported)
        return CsvImportResult(imported=imported, ignored_headers=ignored)

    # ------------------------------------------------------------------
    # Value model
    # ------------------------------------------------------------------

    def extract(self) -> dict[str, Any]:
        """Every row (filtered or not) plus the identities to delete."""
        rows = []
        for row in self.rows:
            row_object: dict[str, Any] = {}
            if row.identity is not None:
                row_object[self._config.identity_key] = row.identity
            row_object.update(row.values)
            rows.append(row_object)
        return {"rows": rows, "deletedIds": self.deleted_ids}

    def view_state(self) -> dict[str, Any]:
        """JSON-safe view of rows and sort / filter / page state."""
        return {
            "columns": self.headers,
            "rows": [
                {"key": row.key, "identity": row.identity, "values": dict(row.values)}
                for row in self.rows
            ],
            "visibleKeys": [row.key for row in self.visible_rows()],
            "pageKeys": [row.key for row in self.page_rows()],
            "deletedIds": self.deleted_ids,
            "sort": (
                {"column": self.sort_state.column, "direction": self.sort_state.direction}
                if self.sort_state
                else None
            ),
            "filters": dict(self.filter_criteria),
            "pagination": (
                {
                    "rowsPerPage": self.pagination.rows_per_page,
                    "currentPage": self.pagination.current_page,
                    "totalPages": self.total_pages,
                }
                if self.pagination
                else None
            ),
        }

    def load(self, value: Any) -> None:
        """
        Rebuild rows from stored data.

        Accepts a list of row objects or the ``{"rows", "deletedIds"}``
        mapping produced by ``extract``. Stored deletions are merged into
        ``deleted_ids``.
        """
        if isinstance(value, dict):
            row_objects = value.get("rows") or []
            for identity in value.get("deletedIds") or []:
                self._deleted[str(identity)] = None
        else:
            row_objects = value or []

        identity_keys = (self._config.identity_key, *IDENTITY_ALIASES)
        self.rows = []
        for row_object in row_objects:
            identity = next(
                (row_object[key] for key in identity_keys if row_object.get(key) not in (None, "")),
                None,
            )
            values = {h: row_object[h] for h in self.headers if h in row_object}
            self.add_row(identity=identity, values=values)
        self._clamp_page()
