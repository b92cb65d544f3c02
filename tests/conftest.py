"""Shared fixtures for dyn-form tests."""

import pytest

from dyn_form.config import FormEngineConfig
from dyn_form.models.row_config import ColumnConfig, FieldOption, TableConfig
from dyn_form.surface import RecordingSurface


@pytest.fixture
def engine_config():
    """Default configuration, independent of the environment."""
    return FormEngineConfig()


@pytest.fixture
def user_type_rows():
    """Row 0 asks for an account type; individuals go to row 1, businesses to row 2."""
    return [
        {
            "id": 0,
            "fields": [
                {
                    "id": "userType",
                    "type": "radio",
                    "label": "Account type",
                    "options": [
                        {"value": "individual", "label": "Individual"},
                        {"value": "business", "label": "Business"},
                    ],
                },
            ],
            "branchConditions": [
                {"fieldId": "userType", "value": "individual", "nextRow": 1},
                {"fieldId": "userType", "value": "business", "nextRow": 2},
            ],
        },
        {
            "id": 1,
            "fields": [{"id": "fullName", "type": "text", "label": "Full name"}],
        },
        {
            "id": 2,
            "fields": [
                {"id": "companyName", "type": "text", "label": "Company"},
                {
                    "id": "items",
                    "type": "table",
                    "required": False,
                    "tableConfig": {
                        "columns": [
                            {"header": "Name"},
                            {"header": "Qty", "type": "number"},
                        ],
                        "sortable": True,
                        "filterable": True,
                    },
                },
            ],
        },
    ]


@pytest.fixture
def chained_rows():
    """Three controlling rows: 0 -> {1, 2}, 1 -> {2, 3}."""
    return [
        {
            "id": 0,
            "fields": [
                {
                    "id": "first",
                    "type": "select",
                    "options": [{"value": "x"}, {"value": "y"}],
                },
            ],
            "branchConditions": [
                {"fieldId": "first", "value": "x", "nextRow": 1},
                {"fieldId": "first", "value": "y", "nextRow": 2},
            ],
        },
        {
            "id": 1,
            "fields": [
                {
                    "id": "second",
                    "type": "radio",
                    "options": [{"value": "go"}, {"value": "skip"}],
                },
            ],
            "branchConditions": [
                {"fieldId": "second", "value": "go", "nextRow": 2},
                {"fieldId": "second", "value": "skip", "nextRow": 3},
            ],
        },
        {"id": 2, "fields": [{"id": "details", "type": "textarea"}]},
        {"id": 3, "fields": [{"id": "notes", "type": "text", "required": False}]},
    ]


@pytest.fixture
def surface():
    return RecordingSurface()


@pytest.fixture
def inventory_config():
    """Table with text, number, date and option-backed columns."""
    return TableConfig(
        columns=[
            ColumnConfig(header="Name"),
            ColumnConfig(header="Qty", type="number"),
            ColumnConfig(header="Due", type="date"),
            ColumnConfig(
                header="Unit",
                options=[FieldOption(value="pcs"), FieldOption(value="kg")],
            ),
        ],
        sortable=True,
        filterable=True,
        pagination=True,
    )


@pytest.fixture
def simple_table_config():
    return TableConfig(columns=[ColumnConfig(header="Name"), ColumnConfig(header="Qty", type="number")])
