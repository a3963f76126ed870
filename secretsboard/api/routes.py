"""FastAPI route handlers for the secretsboard REST API.

All routes are registered on a single APIRouter that ``app.py`` mounts
under the ``/api/v1`` prefix.

Error code conventions:
    400 INVALID_REQUEST        -- request body failed validation
    400 UNKNOWN_RESOURCE_TYPE  -- inspect path names an unsupported kind
    400 MALFORMED_PATH         -- inspect path doesn't match the route pattern
    404 TABLE_NOT_FOUND        -- no table with that name
    404 ROW_NOT_FOUND          -- row absent from the table's current rows
    404 RESOURCE_NOT_FOUND     -- inspected resource absent after load
    409 DELETE_IN_PROGRESS     -- another resource's delete is in flight
    409 NOT_CONFIRMING         -- confirm called without a pending confirmation
    409 NO_NAMESPACE           -- namespaced row without namespace and no default namespace
    502 WATCH_ERROR            -- the inspected resource could not be watched
    504 INSPECT_TIMEOUT        -- the single-item watch did not load in time
(A rejected delete is not an error status: the workflow returns to
``confirming`` with ``error_message`` set.)
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from secretsboard.actions.workflow import DeleteWorkflowState, MenuAction, PreconditionError
from secretsboard.aggregation.table import ResourceTable, RowView, TableView
from secretsboard.api.schemas import (
    DeleteWorkflowResponse,
    ErrorResponse,
    HealthStatus,
    IdentityResponse,
    InspectResponse,
    MenuToggleResponse,
    MetadataEntry,
    NavigationResponse,
    RowRef,
    RowResponse,
    StatusBadgeResponse,
    TableResponse,
    TableSummary,
)
from secretsboard.inspect.view import InspectState, InspectView
from secretsboard.models.resources import ResourceIdentity, TaggedResource
from secretsboard.routing.resolver import INSPECT_ANCHOR, MalformedPath, UnknownResourceType

_log = structlog.get_logger(component="api.routes")

router = APIRouter()

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(),
    )


def _identity(identity: ResourceIdentity) -> IdentityResponse:
    return IdentityResponse(
        kind=identity.kind.value,
        scope=identity.scope.value,
        namespace=identity.namespace,
        name=identity.name,
    )


def _delete_to_schema(state: DeleteWorkflowState) -> DeleteWorkflowResponse:
    return DeleteWorkflowResponse(
        phase=state.phase.value,
        target=_identity(state.target.identity) if state.target is not None else None,
        error_message=state.error_message,
        failed=state.failed,
    )


def _row_to_schema(row: RowView) -> RowResponse:
    return RowResponse(
        identity=_identity(row.identity),
        cells=list(row.cells),
        status=StatusBadgeResponse(label=row.status.label, severity=row.status.severity.value),
        actions=[a.value for a in row.actions],
        menu_open=row.menu_open,
    )


def _table_to_schema(view: TableView) -> TableResponse:
    return TableResponse(
        name=view.name,
        title=view.title,
        state=view.state.value,
        columns=list(view.columns),
        rows=[_row_to_schema(r) for r in view.rows],
        error=view.error,
        empty_title=view.empty_title,
        empty_body=view.empty_body,
        delete=_delete_to_schema(view.delete),
    )


def _inspect_to_schema(view: InspectView) -> InspectResponse:
    assert view.detail is not None
    detail = view.detail
    return InspectResponse(
        kind=view.address.kind.value,
        namespace=view.address.namespace,
        name=view.address.name,
        kind_label=detail.kind_label,
        title=detail.title,
        metadata=[MetadataEntry(term=t, value=v) for t, v in detail.metadata],
        labels=detail.labels,
        annotations=detail.annotations,
        spec_json=detail.spec_json,
        status_json=detail.status_json,
    )


def _get_table(request: Request, table: str) -> ResourceTable | None:
    tables: dict[str, ResourceTable] = request.app.state.tables
    return tables.get(table)


def _find_row(table: ResourceTable, ref: RowRef) -> TaggedResource | None:
    return table.find_row(ref.scope, ref.namespace, ref.name)


def _table_not_found(table: str) -> JSONResponse:
    return _error(404, "TABLE_NOT_FOUND", f"No table named '{table}'")


def _row_not_found(table: str, ref: RowRef) -> JSONResponse:
    where = f" in namespace '{ref.namespace}'" if ref.namespace else ""
    return _error(404, "ROW_NOT_FOUND", f"{table} row '{ref.name}'{where} ({ref.scope.value}) not found")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthStatus,
    summary="Health check",
    description="Lightweight liveness probe.  Always returns 200 if the process is up.",
)
async def get_health(request: Request) -> HealthStatus:
    """``GET /api/v1/health``"""
    from secretsboard import __version__

    tables: dict[str, ResourceTable] = request.app.state.tables
    return HealthStatus(
        status="ok",
        version=__version__,
        tables={name: table.view().state.value for name, table in tables.items()},
    )


@router.get(
    "/tables",
    response_model=list[TableSummary],
    summary="List tables",
)
async def list_tables(request: Request) -> list[TableSummary]:
    """``GET /api/v1/tables``"""
    tables: dict[str, ResourceTable] = request.app.state.tables
    summaries = []
    for table in tables.values():
        view = table.view()
        summaries.append(
            TableSummary(name=view.name, title=view.title, state=view.state.value, row_count=len(view.rows))
        )
    return summaries


@router.get(
    "/tables/{table}",
    response_model=TableResponse,
    summary="Render one table",
    description=(
        "Returns the merged rows of a table with their display cells, classified "
        "status and available actions, plus the delete confirmation state."
    ),
    responses=_ERROR_RESPONSES,
)
async def get_table(request: Request, table: str) -> TableResponse:
    """``GET /api/v1/tables/{table}``"""
    resource_table = _get_table(request, table)
    if resource_table is None:
        return _table_not_found(table)  # type: ignore[return-value]
    return _table_to_schema(resource_table.view())


@router.post(
    "/tables/{table}/menu",
    response_model=MenuToggleResponse,
    summary="Toggle a row's action menu",
    responses=_ERROR_RESPONSES,
)
async def post_toggle_menu(request: Request, table: str, body: RowRef) -> MenuToggleResponse:
    """``POST /api/v1/tables/{table}/menu``"""
    resource_table = _get_table(request, table)
    if resource_table is None:
        return _table_not_found(table)  # type: ignore[return-value]
    row = _find_row(resource_table, body)
    if row is None:
        return _row_not_found(table, body)  # type: ignore[return-value]
    menu_open = resource_table.actions.toggle_menu(row.identity)
    return MenuToggleResponse(identity=_identity(row.identity), menu_open=menu_open)


@router.post(
    "/tables/{table}/inspect",
    response_model=NavigationResponse,
    summary="Inspect a row",
    description="Closes the row's menu and returns the inspect path to navigate to.",
    responses=_ERROR_RESPONSES,
)
async def post_inspect_row(request: Request, table: str, body: RowRef) -> NavigationResponse:
    """``POST /api/v1/tables/{table}/inspect``"""
    resource_table = _get_table(request, table)
    if resource_table is None:
        return _table_not_found(table)  # type: ignore[return-value]
    row = _find_row(resource_table, body)
    if row is None:
        return _row_not_found(table, body)  # type: ignore[return-value]
    resource_table.actions.close_menu(row.identity)
    try:
        path = resource_table.actions.inspect(row)
    except PreconditionError as exc:
        return _error(409, "NO_NAMESPACE", str(exc))  # type: ignore[return-value]
    return NavigationResponse(path=path)


@router.post(
    "/tables/{table}/delete",
    response_model=DeleteWorkflowResponse,
    summary="Request deletion of a row",
    description="Closes the row's menu and opens the delete confirmation for it.",
    responses=_ERROR_RESPONSES,
)
async def post_request_delete(request: Request, table: str, body: RowRef) -> DeleteWorkflowResponse:
    """``POST /api/v1/tables/{table}/delete``"""
    resource_table = _get_table(request, table)
    if resource_table is None:
        return _table_not_found(table)  # type: ignore[return-value]
    row = _find_row(resource_table, body)
    if row is None:
        return _row_not_found(table, body)  # type: ignore[return-value]
    try:
        resource_table.actions.select_menu_item(row, MenuAction.DELETE)
    except PreconditionError as exc:
        _log.warning("delete_request_rejected", table=table, name=body.name, error=str(exc))
        return _error(409, "DELETE_IN_PROGRESS", str(exc))  # type: ignore[return-value]
    return _delete_to_schema(resource_table.actions.delete_state)


@router.post(
    "/tables/{table}/delete/confirm",
    response_model=DeleteWorkflowResponse,
    summary="Confirm the pending delete",
    description=(
        "Sends the delete for the pending target.  A rejected delete returns 200 "
        "with phase ``confirming`` and ``error_message`` set, so it can be retried."
    ),
    responses=_ERROR_RESPONSES,
)
async def post_confirm_delete(request: Request, table: str) -> DeleteWorkflowResponse:
    """``POST /api/v1/tables/{table}/delete/confirm``"""
    resource_table = _get_table(request, table)
    if resource_table is None:
        return _table_not_found(table)  # type: ignore[return-value]
    try:
        state = await resource_table.actions.confirm_delete()
    except PreconditionError as exc:
        return _error(409, "NOT_CONFIRMING", str(exc))  # type: ignore[return-value]
    return _delete_to_schema(state)


@router.post(
    "/tables/{table}/delete/cancel",
    response_model=DeleteWorkflowResponse,
    summary="Cancel the pending delete",
    responses=_ERROR_RESPONSES,
)
async def post_cancel_delete(request: Request, table: str) -> DeleteWorkflowResponse:
    """``POST /api/v1/tables/{table}/delete/cancel``"""
    resource_table = _get_table(request, table)
    if resource_table is None:
        return _table_not_found(table)  # type: ignore[return-value]
    return _delete_to_schema(resource_table.actions.cancel_delete())


@router.get(
    "/inspect/{path:path}",
    response_model=InspectResponse,
    summary="Inspect one resource",
    description=(
        "Resolves ``{plural}/{namespace}/{name}`` or ``{plural}/{name}`` to a "
        "resource and returns its metadata, labels, annotations, spec and status."
    ),
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def get_inspect(request: Request, path: str) -> InspectResponse:
    """``GET /api/v1/inspect/{path}``"""
    inspector = request.app.state.inspector
    try:
        view: InspectView = await inspector.inspect(f"/{INSPECT_ANCHOR}/{path}")
    except UnknownResourceType as exc:
        return _error(  # type: ignore[return-value]
            400, "UNKNOWN_RESOURCE_TYPE", f'The resource type "{exc.token}" is not supported.'
        )
    except MalformedPath as exc:
        return _error(400, "MALFORMED_PATH", exc.detail)  # type: ignore[return-value]

    if view.state is InspectState.ERROR:
        return _error(502, "WATCH_ERROR", view.message or "Error loading resource")  # type: ignore[return-value]
    if view.state is InspectState.NOT_FOUND:
        return _error(404, "RESOURCE_NOT_FOUND", view.message or "Resource not found")  # type: ignore[return-value]
    if view.state is InspectState.LOADING:
        return _error(504, "INSPECT_TIMEOUT", "The resource did not load in time")  # type: ignore[return-value]
    return _inspect_to_schema(view)
