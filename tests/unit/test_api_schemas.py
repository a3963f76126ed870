"""Unit tests for secretsboard.api.schemas."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from secretsboard.api.schemas import DeleteWorkflowResponse, ErrorResponse, HealthStatus, RowRef
from secretsboard.models.resources import Scope


class TestRowRef:
    def test_namespaced_row(self) -> None:
        ref = RowRef(name="web-tls", namespace="team-a")
        assert ref.scope is Scope.NAMESPACE
        assert ref.namespace == "team-a"

    def test_cluster_row(self) -> None:
        ref = RowRef(name="prod-ca", scope="Cluster")
        assert ref.scope is Scope.CLUSTER
        assert ref.namespace is None

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            RowRef(name="")
        assert any("name" in str(e["loc"]) for e in exc_info.value.errors())

    def test_slash_in_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RowRef(name="team-a/web-tls")

    def test_cluster_row_with_namespace_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RowRef(name="prod-ca", namespace="demo", scope="Cluster")

    def test_unknown_scope_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RowRef(name="x", scope="Global")


class TestResponses:
    def test_error_response_round_trips(self) -> None:
        body = ErrorResponse(error="TABLE_NOT_FOUND", detail="No table named 'pods'").model_dump()
        assert body == {"error": "TABLE_NOT_FOUND", "detail": "No table named 'pods'"}

    def test_health_defaults(self) -> None:
        assert HealthStatus(status="ok", version="0.1.0").tables == {}

    def test_delete_workflow_defaults(self) -> None:
        resp = DeleteWorkflowResponse(phase="idle")
        assert resp.target is None
        assert resp.failed is False
