"""Pydantic request/response models for the secretsboard REST API.

All models use Pydantic v2 syntax.  Field descriptions are also used
by FastAPI to generate the OpenAPI spec.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from secretsboard.models.resources import Scope

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RowRef(BaseModel):
    """Identifies one row of a table for a row action."""

    name: str = Field(
        ...,
        description="Resource name.",
        examples=["web-tls", "prod-ca"],
    )
    namespace: str | None = Field(
        default=None,
        description="Resource namespace.  Omit for cluster-scoped resources.",
        examples=["team-a"],
    )
    scope: Scope = Field(
        default=Scope.NAMESPACE,
        description="Scope of the row: ``Namespace`` or ``Cluster``.",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value or "/" in value:
            raise ValueError(f"name must be a non-empty object name, got: {value!r}")
        return value

    @model_validator(mode="after")
    def validate_scope(self) -> RowRef:
        if self.scope is Scope.CLUSTER and self.namespace:
            raise ValueError("cluster-scoped rows take no namespace")
        return self


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class HealthStatus(BaseModel):
    """Response body for ``GET /api/v1/health``."""

    status: str = Field(
        ...,
        description="Always ``ok`` while the process is running.",
        examples=["ok"],
    )
    version: str = Field(
        ...,
        description="secretsboard version string.",
        examples=["0.1.0"],
    )
    tables: dict[str, str] = Field(
        default_factory=dict,
        description="Current state of every table.",
        examples=[{"certificates": "ready", "issuers": "loading"}],
    )


class ErrorResponse(BaseModel):
    """Standard error envelope returned for all 4xx and 5xx responses."""

    error: str = Field(
        ...,
        description="Machine-readable error code.",
        examples=[
            "INVALID_REQUEST",
            "UNKNOWN_RESOURCE_TYPE",
            "MALFORMED_PATH",
            "TABLE_NOT_FOUND",
            "ROW_NOT_FOUND",
            "RESOURCE_NOT_FOUND",
            "DELETE_IN_PROGRESS",
            "NOT_CONFIRMING",
            "WATCH_ERROR",
            "INSPECT_TIMEOUT",
        ],
    )
    detail: str = Field(
        ...,
        description="Human-readable description of the error.",
        examples=['The resource type "pods" is not supported.'],
    )


class IdentityResponse(BaseModel):
    kind: str
    scope: str
    namespace: str | None = None
    name: str


class StatusBadgeResponse(BaseModel):
    label: str
    severity: str


class RowResponse(BaseModel):
    """One rendered table row."""

    identity: IdentityResponse
    cells: list[str]
    status: StatusBadgeResponse
    actions: list[str]
    menu_open: bool = False


class DeleteWorkflowResponse(BaseModel):
    """State of a table's delete confirmation surface."""

    phase: str = Field(..., examples=["idle", "confirming", "deleting"])
    target: IdentityResponse | None = None
    error_message: str | None = None
    failed: bool = False


class TableResponse(BaseModel):
    """Response body for ``GET /api/v1/tables/{table}``."""

    name: str
    title: str
    state: str = Field(..., examples=["loading", "error", "empty", "ready"])
    columns: list[str]
    rows: list[RowResponse] = Field(default_factory=list)
    error: str | None = None
    empty_title: str = ""
    empty_body: str = ""
    delete: DeleteWorkflowResponse


class TableSummary(BaseModel):
    name: str
    title: str
    state: str
    row_count: int


class MenuToggleResponse(BaseModel):
    identity: IdentityResponse
    menu_open: bool


class NavigationResponse(BaseModel):
    """Path the client should navigate to."""

    path: str = Field(..., examples=["/secrets-management/inspect/certificates/team-a/web-tls"])


class MetadataEntry(BaseModel):
    term: str
    value: str


class InspectResponse(BaseModel):
    """Response body for ``GET /api/v1/inspect/{path}``."""

    kind: str
    namespace: str | None = None
    name: str
    kind_label: str
    title: str
    metadata: list[MetadataEntry]
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    spec_json: str | None = None
    status_json: str | None = None
