"""Inspect view: full detail of one resource addressed by path.

The view follows the same states as a table, seen through a single-item
watch: loading until the first snapshot, an error banner when the watch
fails, a softer not-found notice when the loaded watch holds no object,
and the resource detail otherwise.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from secretsboard.collector.watcher import CollectionSnapshot
from secretsboard.models.kinds import MODELS, ModelDescriptor
from secretsboard.models.resources import ResourceAddress, WatchedResource
from secretsboard.observability.logging import get_logger
from secretsboard.observability.metrics import inspect_requests_total
from secretsboard.routing.resolver import ResolutionError, resolve


class InspectState(StrEnum):
    LOADING = "loading"
    ERROR = "error"
    NOT_FOUND = "not_found"
    FOUND = "found"


class ResourceNotFound(Exception):
    """A successfully loaded single-item watch holds no object."""

    def __init__(self, address: ResourceAddress) -> None:
        label = MODELS[address.kind].label
        super().__init__(f'The {label} "{address.name}" was not found.')
        self.address = address


@dataclass(frozen=True)
class ResourceDetail:
    """Display-ready detail of one resource.

    Attributes:
        kind_label:  Display name of the kind.
        title:       Heading, ``"<Kind>: <name>"``.
        metadata:    Ordered (term, value) pairs; optional fields omitted.
        labels:      Object labels.
        annotations: Object annotations.
        spec_json:   ``spec`` as indented JSON, None when absent.
        status_json: ``status`` as indented JSON, None when absent.
    """

    kind_label: str
    title: str
    metadata: tuple[tuple[str, str], ...]
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    spec_json: str | None = None
    status_json: str | None = None


@dataclass(frozen=True)
class InspectView:
    address: ResourceAddress
    state: InspectState
    detail: ResourceDetail | None = None
    message: str | None = None


def format_timestamp(timestamp: str) -> str:
    """Render an RFC 3339 timestamp for display; unparsable values pass through."""
    if not timestamp:
        return "-"
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    return parsed.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def _to_json(value: dict[str, Any]) -> str | None:
    if not value:
        return None
    return json.dumps(value, indent=2, default=str)


def build_detail(address: ResourceAddress, resource: WatchedResource) -> ResourceDetail:
    label = MODELS[address.kind].label
    meta = resource.metadata
    rows: list[tuple[str, str]] = [("Name", meta.name or "-")]
    if meta.namespace:
        rows.append(("Namespace", meta.namespace))
    rows.append(("Creation timestamp", format_timestamp(meta.creation_timestamp)))
    if meta.uid:
        rows.append(("UID", meta.uid))
    if meta.resource_version:
        rows.append(("Resource version", meta.resource_version))
    return ResourceDetail(
        kind_label=label,
        title=f"{label}: {address.name}",
        metadata=tuple(rows),
        labels=dict(meta.labels),
        annotations=dict(meta.annotations),
        spec_json=_to_json(resource.spec),
        status_json=_to_json(resource.status),
    )


def build_inspect_view(address: ResourceAddress, snapshot: CollectionSnapshot) -> InspectView:
    """Derive the inspect view of ``address`` from a single-item watch snapshot."""
    if snapshot.error is not None:
        return InspectView(address=address, state=InspectState.ERROR, message=snapshot.error.message)
    if not snapshot.loaded:
        return InspectView(address=address, state=InspectState.LOADING)
    resource = next((r for r in snapshot.items if r.name == address.name), None)
    if resource is None:
        return InspectView(address=address, state=InspectState.NOT_FOUND, message=str(ResourceNotFound(address)))
    return InspectView(address=address, state=InspectState.FOUND, detail=build_detail(address, resource))


WatcherFactory = Callable[[ModelDescriptor, str | None, str], Any]


class ResourceInspector:
    """Resolves an inspect path and reads the addressed resource once.

    A single-item watcher is started for the address and stopped as soon as
    its first loaded or failed snapshot arrives, or when ``timeout_s``
    elapses, in which case the view is returned in the loading state.
    """

    def __init__(
        self,
        watcher_factory: WatcherFactory,
        default_namespace: str | None = None,
        timeout_s: float = 10.0,
    ) -> None:
        self._factory = watcher_factory
        self._default_namespace = default_namespace
        self._timeout_s = timeout_s
        self._log = get_logger("inspect")

    async def inspect(self, path: str) -> InspectView:
        """Return the inspect view for ``path``.

        Raises:
            ResolutionError: ``path`` does not address a supported resource.
        """
        try:
            address = resolve(path, self._default_namespace)
        except ResolutionError:
            inspect_requests_total.labels(outcome="unresolved").inc()
            raise

        model = MODELS[address.kind]
        watcher = self._factory(model, address.namespace, address.name)
        settled = asyncio.Event()

        def _on_snapshot(snapshot: CollectionSnapshot) -> None:
            if snapshot.loaded or snapshot.error is not None:
                settled.set()

        watcher.add_listener(_on_snapshot)
        await watcher.start()
        try:
            async with asyncio.timeout(self._timeout_s):
                await settled.wait()
        except TimeoutError:
            self._log.warning("inspect_timeout", path=path, timeout_s=self._timeout_s)
        finally:
            await watcher.stop()

        view = build_inspect_view(address, watcher.snapshot)
        inspect_requests_total.labels(outcome=view.state.value).inc()
        self._log.info("inspect_resolved", path=path, kind=address.kind.value, state=view.state.value)
        return view
