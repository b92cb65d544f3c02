"""
Session API for dyn-form.

A thin JSON presentation layer: clients create a session from a row
configuration, forward field changes and table operations, and render the
returned snapshot.
"""

import dataclasses
import logging
import uuid
from typing import Any

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from dyn_form.api.session_store import drop_session, get_session, set_session
from dyn_form.config import get_config
from dyn_form.engine.table_widget import TableWidget
from dyn_form.exceptions import ConfigurationError, FormEngineError, SchemaMismatch
from dyn_form.models.form_state import FileHandle
from dyn_form.session import FormSession
from dyn_form.surface import RecordingSurface

logger = logging.getLogger("dyn-form.api")


def _session(request: Request) -> FormSession:
    session_id = request.path_params["session_id"]
    session = get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return session


def _table(request: Request) -> TableWidget:
    session = _session(request)
    field_id = request.path_params["field_id"]
    try:
        return session.table(field_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown field: {field_id}") from None
    except TypeError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None


async def _body(request: Request) -> dict[str, Any]:
    raw = await request.body()
    if not raw:
        return {}
    data = await request.json()
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return data


def _json_safe(values: dict[str, Any]) -> dict[str, Any]:
    return {
        key: {"name": value.name, "size": value.size} if isinstance(value, FileHandle) else value
        for key, value in values.items()
    }


# ----------------------------------------------------------------------
# Sessions
# ----------------------------------------------------------------------


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    config = get_config()
    return JSONResponse({
        "status": "healthy",
        "service": "dyn-form",
        "port": config.server_port,
    })


async def create_session(request: Request) -> JSONResponse:
    data = await _body(request)
    if "rows" not in data:
        raise HTTPException(status_code=400, detail="rows is required")

    session = FormSession(data["rows"], surface=RecordingSurface())
    if data.get("values"):
        session.populate(data["values"])

    session_id = uuid.uuid4().hex
    set_session(session_id, session)
    logger.info(f"Created session {session_id}")
    return JSONResponse({"session_id": session_id, **session.snapshot()}, status_code=201)


async def read_session(request: Request) -> JSONResponse:
    session = _session(request)
    return JSONResponse({"session_id": request.path_params["session_id"], **session.snapshot()})


async def delete_session(request: Request) -> JSONResponse:
    session_id = request.path_params["session_id"]
    if not drop_session(session_id):
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    logger.info(f"Deleted session {session_id}")
    return JSONResponse({"success": True, "session_id": session_id})


async def change_field(request: Request) -> JSONResponse:
    session = _session(request)
    field_id = request.path_params["field_id"]
    data = await _body(request)

    try:
        session.field(field_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown field: {field_id}") from None

    try:
        outcome = session.on_field_change(field_id, data.get("value"))
    except TypeError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None

    return JSONResponse({
        "reconciliation": dataclasses.asdict(outcome) if outcome else None,
        **session.snapshot(),
    })


async def populate_session(request: Request) -> JSONResponse:
    session = _session(request)
    data = await _body(request)
    session.populate(data.get("values") or {})
    return JSONResponse(session.snapshot())


async def submit_session(request: Request) -> JSONResponse:
    session = _session(request)
    result = session.validate()
    return JSONResponse({
        "values": _json_safe(session.submit()),
        "validation": result.model_dump(),
    })


# ----------------------------------------------------------------------
# Tables
# ----------------------------------------------------------------------


async def add_table_row(request: Request) -> JSONResponse:
    table = _table(request)
    data = await _body(request)
    row = table.add_row(identity=data.get("identity"), values=data.get("values"))
    return JSONResponse({"key": row.key, "table": table.view_state()}, status_code=201)


async def update_table_row(request: Request) -> JSONResponse:
    table = _table(request)
    data = await _body(request)
    if "column" not in data:
        raise HTTPException(status_code=400, detail="column is required")
    try:
        row = table.get_row(request.path_params["key"])
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    table.update_cell(row, data["column"], data.get("value"))
    return JSONResponse(table.view_state())


async def delete_table_row(request: Request) -> JSONResponse:
    table = _table(request)
    try:
        table.delete_row(request.path_params["key"])
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    return JSONResponse(table.view_state())


async def sort_table(request: Request) -> JSONResponse:
    table = _table(request)
    data = await _body(request)
    table.sort(data.get("column", ""))
    return JSONResponse(table.view_state())


async def filter_table(request: Request) -> JSONResponse:
    table = _table(request)
    data = await _body(request)
    if data.get("criterion") is None:
        table.clear_filter(data.get("column", ""))
    else:
        table.filter(data.get("column", ""), data["criterion"])
    return JSONResponse(table.view_state())


async def page_table(request: Request) -> JSONResponse:
    table = _table(request)
    data = await _body(request)
    if data.get("rowsPerPage") is not None:
        table.set_rows_per_page(int(data["rowsPerPage"]))
    if data.get("page") is not None:
        table.go_to_page(int(data["page"]))
    return JSONResponse(table.view_state())


async def export_table(request: Request) -> Response:
    table = _table(request)
    return Response(
        table.export_rows(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{table.export_filename}"'},
    )


async def import_table(request: Request) -> JSONResponse:
    table = _table(request)
    text = (await request.body()).decode("utf-8")
    result = table.import_rows(text)
    return JSONResponse({
        "imported": result.imported,
        "ignoredHeaders": result.ignored_headers,
        "table": table.view_state(),
    })


# ----------------------------------------------------------------------
# Error handlers
# ----------------------------------------------------------------------


async def _http_error(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code)


async def _configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.warning(f"Rejected row configuration: {exc.issues}")
    return JSONResponse(
        {"error": "Invalid row configuration", "issues": exc.issues}, status_code=400
    )


async def _schema_mismatch(request: Request, exc: SchemaMismatch) -> JSONResponse:
    return JSONResponse({"error": str(exc), "missing": exc.missing}, status_code=422)


async def _bad_request(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=400)


def create_app() -> Starlette:
    """
    Create the Starlette app for the session API.

    Returns:
        App with session, field and table routes registered.
    """
    table = "/api/sessions/{session_id}/tables/{field_id}"
    return Starlette(
        routes=[
            Route("/health", health_check, methods=["GET"]),
            Route("/api/sessions", create_session, methods=["POST"]),
            Route("/api/sessions/{session_id}", read_session, methods=["GET"]),
            Route("/api/sessions/{session_id}", delete_session, methods=["DELETE"]),
            Route("/api/sessions/{session_id}/fields/{field_id}", change_field, methods=["POST"]),
            Route("/api/sessions/{session_id}/populate", populate_session, methods=["POST"]),
            Route("/api/sessions/{session_id}/submit", submit_session, methods=["POST"]),
            Route(f"{table}/rows", add_table_row, methods=["POST"]),
            Route(f"{table}/rows/{{key:int}}", update_table_row, methods=["PATCH"]),
            Route(f"{table}/rows/{{key:int}}", delete_table_row, methods=["DELETE"]),
            Route(f"{table}/sort", sort_table, methods=["POST"]),
            Route(f"{table}/filter", filter_table, methods=["POST"]),
            Route(f"{table}/page", page_table, methods=["POST"]),
            Route(f"{table}/csv", export_table, methods=["GET"]),
            Route(f"{table}/csv", import_table, methods=["POST"]),
        ],
        exception_handlers={
            HTTPException: _http_error,
            ConfigurationError: _configuration_error,
            SchemaMismatch: _schema_mismatch,
            FormEngineError: _bad_request,
            ValueError: _bad_request,
        },
    )


async def run_server(host: str | None = None, port: int | None = None) -> None:
    """
    Serve the session API with uvicorn.

    Args:
        host: Host to bind to (default: config.server_host)
        port: Port to listen on (default: config.server_port)
    """
    import uvicorn

    config = get_config()
    host = host or config.server_host
    port = port or config.server_port
    level = "DEBUG" if config.verbose_output else config.log_level
    logging.basicConfig(level=level)

    logger.info(f"Starting dyn-form session API on {host}:{port}...")
    server_config = uvicorn.Config(create_app(), host=host, port=port, log_level=level.lower())
    await uvicorn.Server(server_config).serve()
