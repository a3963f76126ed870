"""Unit tests for the FastAPI application (secretsboard.api.app + routes)."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from secretsboard.actions.delete import DeleteFailure
from secretsboard.aggregation.table import ResourceTable
from secretsboard.api.app import create_app
from secretsboard.collector.watcher import CollectionSnapshot, SnapshotListener, WatchError
from secretsboard.inspect.view import InspectState, InspectView, build_detail
from secretsboard.models.kinds import CERTIFICATE, CERTIFICATES, CLUSTER_ISSUER, ISSUER, ISSUERS, ModelDescriptor
from secretsboard.models.resources import ResourceAddress, ResourceKind, WatchedResource
from secretsboard.routing.resolver import MalformedPath, UnknownResourceType

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


class _Source:
    def __init__(self, model: ModelDescriptor, *items: dict[str, Any], loaded: bool = True) -> None:
        self.model = model
        self.snapshot = CollectionSnapshot(items=tuple(WatchedResource.from_dict(i) for i in items), loaded=loaded)
        self.listeners: list[SnapshotListener] = []

    def add_listener(self, listener: SnapshotListener) -> None:
        self.listeners.append(listener)


def _obj(name: str, namespace: str | None = None, ready: str = "True") -> dict[str, Any]:
    meta: dict[str, Any] = {"name": name}
    if namespace:
        meta["namespace"] = namespace
    return {"metadata": meta, "spec": {}, "status": {"conditions": [{"type": "Ready", "status": ready}]}}


def _make_tables(deleter: AsyncMock | None = None) -> dict[str, ResourceTable]:
    deleter = deleter or AsyncMock(return_value=None)
    certs = ResourceTable(
        CERTIFICATES,
        [_Source(CERTIFICATE, _obj("web-tls", "team-a"), _obj("api-tls", "team-a", ready="False"))],
        deleter,
        base_path="/secrets-management",
        default_namespace="demo",
    )
    issuers = ResourceTable(
        ISSUERS,
        [_Source(ISSUER, _obj("ca", "demo")), _Source(CLUSTER_ISSUER, _obj("prod-ca"))],
        deleter,
        base_path="/secrets-management",
        default_namespace="demo",
    )
    return {"certificates": certs, "issuers": issuers}


def _make_inspector(view: InspectView | None = None, exc: Exception | None = None) -> MagicMock:
    inspector = MagicMock()
    inspector.inspect = AsyncMock(return_value=view, side_effect=exc)
    return inspector


def _make_app(
    tables: dict[str, ResourceTable] | None = None,
    inspector: MagicMock | None = None,
) -> TestClient:
    app = create_app(tables=tables if tables is not None else _make_tables(), inspector=inspector or _make_inspector())
    return TestClient(app, raise_server_exceptions=False)


# ---------------------------------------------------------------------------
# GET /api/v1/health
# ---------------------------------------------------------------------------


class TestHealthEndpoint:
    def test_returns_200_with_ok_status(self) -> None:
        resp = _make_app().get("/api/v1/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert "version" in body
        assert body["tables"] == {"certificates": "ready", "issuers": "ready"}


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


class TestTablesEndpoint:
    def test_list_tables(self) -> None:
        resp = _make_app().get("/api/v1/tables")
        assert resp.status_code == 200
        assert {t["name"]: t["row_count"] for t in resp.json()} == {"certificates": 2, "issuers": 2}

    def test_get_table_rows(self) -> None:
        resp = _make_app().get("/api/v1/tables/certificates")
        assert resp.status_code == 200
        body = resp.json()
        assert body["state"] == "ready"
        assert body["columns"][-1] == "Status"
        assert [r["status"]["label"] for r in body["rows"]] == ["Ready", "Not Ready"]
        assert body["rows"][1]["status"]["severity"] == "danger"
        assert body["rows"][0]["actions"] == ["inspect", "delete"]
        assert body["delete"]["phase"] == "idle"

    def test_merged_issuers_tagged_by_scope(self) -> None:
        body = _make_app().get("/api/v1/tables/issuers").json()
        assert [(r["identity"]["kind"], r["identity"]["scope"]) for r in body["rows"]] == [
            ("Issuer", "Namespace"),
            ("ClusterIssuer", "Cluster"),
        ]

    def test_unknown_table_404(self) -> None:
        resp = _make_app().get("/api/v1/tables/pods")
        assert resp.status_code == 404
        assert resp.json()["error"] == "TABLE_NOT_FOUND"

    def test_error_state(self) -> None:
        source = _Source(CERTIFICATE, loaded=False)
        source.snapshot = CollectionSnapshot(error=WatchError("certificates is forbidden"))
        tables = {"certificates": ResourceTable(CERTIFICATES, [source], AsyncMock())}
        body = _make_app(tables=tables).get("/api/v1/tables/certificates").json()
        assert body["state"] == "error"
        assert body["error"] == "certificates is forbidden"
        assert body["rows"] == []


# ---------------------------------------------------------------------------
# Row actions
# ---------------------------------------------------------------------------


class TestRowActions:
    def test_toggle_menu(self) -> None:
        client = _make_app()
        body = {"name": "web-tls", "namespace": "team-a"}
        assert client.post("/api/v1/tables/certificates/menu", json=body).json()["menu_open"] is True
        rows = client.get("/api/v1/tables/certificates").json()["rows"]
        assert rows[0]["menu_open"] is True
        assert rows[1]["menu_open"] is False

    def test_inspect_row_returns_path(self) -> None:
        client = _make_app()
        resp = client.post("/api/v1/tables/issuers/inspect", json={"name": "prod-ca", "scope": "Cluster"})
        assert resp.status_code == 200
        assert resp.json()["path"] == "/secrets-management/inspect/clusterissuers/prod-ca"

    def test_inspect_row_without_namespace_409(self) -> None:
        certs = ResourceTable(CERTIFICATES, [_Source(CERTIFICATE, _obj("orphan"))], AsyncMock(return_value=None))
        client = _make_app(tables={"certificates": certs})
        client.post("/api/v1/tables/certificates/menu", json={"name": "orphan"})

        resp = client.post("/api/v1/tables/certificates/inspect", json={"name": "orphan"})

        assert resp.status_code == 409
        assert resp.json()["error"] == "NO_NAMESPACE"
        assert client.get("/api/v1/tables/certificates").json()["rows"][0]["menu_open"] is False

    def test_row_not_found(self) -> None:
        resp = _make_app().post("/api/v1/tables/certificates/menu", json={"name": "nope", "namespace": "team-a"})
        assert resp.status_code == 404
        assert resp.json()["error"] == "ROW_NOT_FOUND"

    def test_invalid_body_400(self) -> None:
        resp = _make_app().post("/api/v1/tables/issuers/menu", json={"name": "x", "namespace": "a", "scope": "Cluster"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "INVALID_REQUEST"

    def test_missing_name_400(self) -> None:
        resp = _make_app().post("/api/v1/tables/certificates/menu", json={})
        assert resp.status_code == 400


class TestDeleteFlow:
    def test_request_confirm_success(self) -> None:
        deleter = AsyncMock(return_value=None)
        client = _make_app(tables=_make_tables(deleter))

        resp = client.post("/api/v1/tables/certificates/delete", json={"name": "web-tls", "namespace": "team-a"})
        assert resp.status_code == 200
        assert resp.json()["phase"] == "confirming"
        assert resp.json()["target"]["name"] == "web-tls"

        resp = client.post("/api/v1/tables/certificates/delete/confirm")
        assert resp.status_code == 200
        assert resp.json()["phase"] == "idle"
        deleter.assert_awaited_once()

    def test_confirm_failure_returns_confirming_with_message(self) -> None:
        client = _make_app(tables=_make_tables(AsyncMock(side_effect=DeleteFailure("quota exceeded"))))
        client.post("/api/v1/tables/certificates/delete", json={"name": "web-tls", "namespace": "team-a"})

        body = client.post("/api/v1/tables/certificates/delete/confirm").json()
        assert body["phase"] == "confirming"
        assert body["error_message"] == "quota exceeded"
        assert body["failed"] is True

    def test_confirm_without_request_409(self) -> None:
        resp = _make_app().post("/api/v1/tables/certificates/delete/confirm")
        assert resp.status_code == 409
        assert resp.json()["error"] == "NOT_CONFIRMING"

    def test_cancel_is_idempotent(self) -> None:
        client = _make_app()
        client.post("/api/v1/tables/certificates/delete", json={"name": "web-tls", "namespace": "team-a"})
        assert client.post("/api/v1/tables/certificates/delete/cancel").json()["phase"] == "idle"
        assert client.post("/api/v1/tables/certificates/delete/cancel").json()["phase"] == "idle"

    def test_request_closes_menu(self) -> None:
        client = _make_app()
        row = {"name": "web-tls", "namespace": "team-a"}
        client.post("/api/v1/tables/certificates/menu", json=row)
        client.post("/api/v1/tables/certificates/delete", json=row)
        assert client.get("/api/v1/tables/certificates").json()["rows"][0]["menu_open"] is False


# ---------------------------------------------------------------------------
# GET /api/v1/inspect/{path}
# ---------------------------------------------------------------------------


def _found_view() -> InspectView:
    address = ResourceAddress(kind=ResourceKind.CERTIFICATE, namespace="team-a", name="web-tls")
    resource = WatchedResource.from_dict(
        {"metadata": {"name": "web-tls", "namespace": "team-a"}, "spec": {"secretName": "s"}}
    )
    return InspectView(address=address, state=InspectState.FOUND, detail=build_detail(address, resource))


class TestInspectEndpoint:
    def test_found(self) -> None:
        inspector = _make_inspector(view=_found_view())
        resp = _make_app(inspector=inspector).get("/api/v1/inspect/certificates/team-a/web-tls")
        assert resp.status_code == 200
        body = resp.json()
        assert body["title"] == "Certificate: web-tls"
        assert body["metadata"][0] == {"term": "Name", "value": "web-tls"}
        inspector.inspect.assert_awaited_once_with("/inspect/certificates/team-a/web-tls")

    def test_unknown_type_400(self) -> None:
        exc = UnknownResourceType("/inspect/pods/x", "pods")
        resp = _make_app(inspector=_make_inspector(exc=exc)).get("/api/v1/inspect/pods/x")
        assert resp.status_code == 400
        assert resp.json()["error"] == "UNKNOWN_RESOURCE_TYPE"
        assert '"pods"' in resp.json()["detail"]

    def test_malformed_400(self) -> None:
        exc = MalformedPath("/inspect/certificates/a/b/c", "too many segments")
        resp = _make_app(inspector=_make_inspector(exc=exc)).get("/api/v1/inspect/certificates/a/b/c")
        assert resp.status_code == 400
        assert resp.json()["error"] == "MALFORMED_PATH"

    def test_not_found_404(self) -> None:
        address = ResourceAddress(kind=ResourceKind.CERTIFICATE, namespace="team-a", name="gone")
        message = 'The Certificate "gone" was not found.'
        view = InspectView(address=address, state=InspectState.NOT_FOUND, message=message)
        resp = _make_app(inspector=_make_inspector(view=view)).get("/api/v1/inspect/certificates/team-a/gone")
        assert resp.status_code == 404
        assert resp.json()["error"] == "RESOURCE_NOT_FOUND"

    def test_watch_error_502(self) -> None:
        address = ResourceAddress(kind=ResourceKind.CERTIFICATE, namespace="team-a", name="x")
        view = InspectView(address=address, state=InspectState.ERROR, message="forbidden")
        resp = _make_app(inspector=_make_inspector(view=view)).get("/api/v1/inspect/certificates/team-a/x")
        assert resp.status_code == 502
        assert resp.json()["detail"] == "forbidden"

    def test_timeout_504(self) -> None:
        address = ResourceAddress(kind=ResourceKind.CERTIFICATE, namespace="team-a", name="x")
        view = InspectView(address=address, state=InspectState.LOADING)
        resp = _make_app(inspector=_make_inspector(view=view)).get("/api/v1/inspect/certificates/team-a/x")
        assert resp.status_code == 504
        assert resp.json()["error"] == "INSPECT_TIMEOUT"


class TestMetricsEndpoint:
    def test_metrics_exposed(self) -> None:
        resp = _make_app().get("/metrics/")
        assert resp.status_code == 200
        assert "secretsboard_" in resp.text
