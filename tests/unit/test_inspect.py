"""Unit tests for secretsboard.inspect.view — detail rendering and the one-shot inspector."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import MagicMock

import pytest

from secretsboard.collector.watcher import CollectionSnapshot, SnapshotListener, WatchError
from secretsboard.inspect.view import (
    InspectState,
    ResourceInspector,
    build_detail,
    build_inspect_view,
    format_timestamp,
)
from secretsboard.models.kinds import CERTIFICATE, CLUSTER_ISSUER, ModelDescriptor
from secretsboard.models.resources import ResourceAddress, ResourceKind, WatchedResource
from secretsboard.routing.resolver import MalformedPath, UnknownResourceType

_CERT_ADDRESS = ResourceAddress(kind=ResourceKind.CERTIFICATE, namespace="team-a", name="web-tls")


def _cert(**extra_meta: Any) -> WatchedResource:
    return WatchedResource.from_dict(
        {
            "metadata": {
                "name": "web-tls",
                "namespace": "team-a",
                "creationTimestamp": "2024-01-15T10:30:00Z",
                "uid": "u-1",
                "resourceVersion": "77",
                "labels": {"app": "web"},
                **extra_meta,
            },
            "spec": {"secretName": "web-tls"},
            "status": {"conditions": [{"type": "Ready", "status": "True"}]},
        }
    )


# ---------------------------------------------------------------------------
# Detail rendering
# ---------------------------------------------------------------------------


class TestBuildDetail:
    def test_metadata_rows_in_order(self) -> None:
        detail = build_detail(_CERT_ADDRESS, _cert())
        assert [term for term, _ in detail.metadata] == [
            "Name",
            "Namespace",
            "Creation timestamp",
            "UID",
            "Resource version",
        ]
        assert detail.title == "Certificate: web-tls"
        assert detail.kind_label == "Certificate"

    def test_spec_and_status_as_indented_json(self) -> None:
        detail = build_detail(_CERT_ADDRESS, _cert())
        assert detail.spec_json == json.dumps({"secretName": "web-tls"}, indent=2)
        assert detail.status_json is not None
        assert json.loads(detail.status_json)["conditions"][0]["type"] == "Ready"

    def test_cluster_resource_has_no_namespace_row(self) -> None:
        address = ResourceAddress(kind=ResourceKind.CLUSTER_ISSUER, name="prod-ca")
        detail = build_detail(address, WatchedResource.from_dict({"metadata": {"name": "prod-ca"}}))
        terms = [term for term, _ in detail.metadata]
        assert "Namespace" not in terms
        assert detail.spec_json is None
        assert detail.status_json is None

    def test_labels_copied(self) -> None:
        assert build_detail(_CERT_ADDRESS, _cert()).labels == {"app": "web"}


class TestFormatTimestamp:
    def test_formats_rfc3339(self) -> None:
        assert format_timestamp("2024-01-15T10:30:00Z") == "2024-01-15 10:30:00 UTC"

    def test_empty_is_dash(self) -> None:
        assert format_timestamp("") == "-"

    def test_unparsable_passes_through(self) -> None:
        assert format_timestamp("yesterday") == "yesterday"


# ---------------------------------------------------------------------------
# View states
# ---------------------------------------------------------------------------


class TestBuildInspectView:
    def test_loading(self) -> None:
        assert build_inspect_view(_CERT_ADDRESS, CollectionSnapshot()).state is InspectState.LOADING

    def test_error_wins(self) -> None:
        snap = CollectionSnapshot(loaded=True, error=WatchError("forbidden"))
        view = build_inspect_view(_CERT_ADDRESS, snap)
        assert view.state is InspectState.ERROR
        assert view.message == "forbidden"

    def test_not_found(self) -> None:
        view = build_inspect_view(_CERT_ADDRESS, CollectionSnapshot(loaded=True))
        assert view.state is InspectState.NOT_FOUND
        assert view.message == 'The Certificate "web-tls" was not found.'

    def test_found(self) -> None:
        view = build_inspect_view(_CERT_ADDRESS, CollectionSnapshot(items=(_cert(),), loaded=True))
        assert view.state is InspectState.FOUND
        assert view.detail is not None


# ---------------------------------------------------------------------------
# ResourceInspector
# ---------------------------------------------------------------------------


class _FakeWatcher:
    def __init__(self, final: CollectionSnapshot | None) -> None:
        self._final = final
        self.snapshot = CollectionSnapshot()
        self._listeners: list[SnapshotListener] = []
        self.started = False
        self.stopped = False

    def add_listener(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    async def start(self) -> None:
        self.started = True
        if self._final is not None:
            self.snapshot = self._final
            for listener in self._listeners:
                listener(self._final)

    async def stop(self) -> None:
        self.stopped = True


def _inspector(final: CollectionSnapshot | None, timeout_s: float = 1.0) -> tuple[ResourceInspector, MagicMock]:
    factory = MagicMock(side_effect=lambda model, ns, name: _FakeWatcher(final))
    return ResourceInspector(factory, default_namespace="demo", timeout_s=timeout_s), factory


class TestResourceInspector:
    async def test_found_resource(self) -> None:
        inspector, factory = _inspector(CollectionSnapshot(items=(_cert(),), loaded=True))
        view = await inspector.inspect("/secrets-management/inspect/certificates/team-a/web-tls")

        assert view.state is InspectState.FOUND
        factory.assert_called_once_with(CERTIFICATE, "team-a", "web-tls")

    async def test_watcher_stopped_after_settling(self) -> None:
        watchers: list[_FakeWatcher] = []

        def _factory(model: ModelDescriptor, ns: str | None, name: str) -> _FakeWatcher:
            w = _FakeWatcher(CollectionSnapshot(loaded=True))
            watchers.append(w)
            return w

        inspector = ResourceInspector(_factory)
        await inspector.inspect("/inspect/clusterissuers/prod-ca")
        assert watchers[0].started and watchers[0].stopped

    async def test_cluster_path_passes_no_namespace(self) -> None:
        inspector, factory = _inspector(CollectionSnapshot(loaded=True))
        view = await inspector.inspect("/inspect/clusterissuers/prod-ca")
        assert view.state is InspectState.NOT_FOUND
        factory.assert_called_once_with(CLUSTER_ISSUER, None, "prod-ca")

    async def test_default_namespace_used(self) -> None:
        inspector, factory = _inspector(CollectionSnapshot(loaded=True))
        await inspector.inspect("/inspect/certificates/web-tls")
        factory.assert_called_once_with(CERTIFICATE, "demo", "web-tls")

    async def test_watch_error(self) -> None:
        inspector, _ = _inspector(CollectionSnapshot(error=WatchError("no CRD")))
        view = await inspector.inspect("/inspect/certificates/team-a/web-tls")
        assert view.state is InspectState.ERROR

    async def test_timeout_returns_loading(self) -> None:
        inspector, _ = _inspector(None, timeout_s=0.01)
        view = await inspector.inspect("/inspect/certificates/team-a/web-tls")
        assert view.state is InspectState.LOADING

    async def test_unknown_type_raises_without_watching(self) -> None:
        inspector, factory = _inspector(CollectionSnapshot(loaded=True))
        with pytest.raises(UnknownResourceType):
            await inspector.inspect("/inspect/pods/demo/web")
        factory.assert_not_called()

    async def test_malformed_path_raises(self) -> None:
        inspector, _ = _inspector(CollectionSnapshot(loaded=True))
        with pytest.raises(MalformedPath):
            await inspector.inspect("/inspect/certificates/a/b/c")
