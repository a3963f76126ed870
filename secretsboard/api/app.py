"""FastAPI application factory.

``create_app`` wires the dashboard tables and the inspector onto
``app.state`` so the route handlers can reach them, mounts the v1 router
and exposes Prometheus metrics at ``/metrics``.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from secretsboard.aggregation.table import ResourceTable
from secretsboard.api.routes import router
from secretsboard.api.schemas import ErrorResponse


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        msg = str(err.get("msg", "invalid value"))
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid request"


def create_app(tables: dict[str, ResourceTable], inspector: Any) -> FastAPI:
    """Build the REST application.

    Args:
        tables:    Dashboard tables keyed by family name.
        inspector: Object with ``async inspect(path) -> InspectView``.
    """
    from secretsboard import __version__

    app = FastAPI(
        title="secretsboard",
        version=__version__,
        description="Dashboard for cert-manager and external-secrets resources.",
    )
    app.state.tables = tables
    app.state.inspector = inspector

    @app.exception_handler(RequestValidationError)
    async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="INVALID_REQUEST", detail=_validation_message(exc)).model_dump(),
        )

    app.include_router(router, prefix="/api/v1")
    app.mount("/metrics", make_asgi_app())
    return app
