"""Custom resource watcher producing full-replacement snapshots.

Wraps kubernetes_asyncio's Watch over ``CustomObjectsApi`` to provide:
- An initial list that marks the snapshot as loaded
- Resumable watches via resourceVersion and bookmarks
- Exponential back-off (1 s – 60 s) on 429, 5xx and stream termination
- A full relist on 410 Gone, replacing the snapshot wholesale
- Listener delivery of ``CollectionSnapshot(items, loaded, error)`` after
  every change, in delivery order, never coalesced

A list failure (missing CRD, RBAC denial, API outage) is surfaced on the
snapshot as a :class:`WatchError` until a later list succeeds; retrying is
the watcher's job, not its listeners'.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any

from kubernetes_asyncio import watch
from kubernetes_asyncio.client.exceptions import ApiException

from secretsboard.models.kinds import ModelDescriptor
from secretsboard.models.resources import WatchedResource
from secretsboard.observability.logging import get_logger
from secretsboard.observability.metrics import (
    watched_resources,
    watcher_errors_total,
    watcher_events_total,
    watcher_relistings_total,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_BACKOFF_MIN_S: float = 1.0
_BACKOFF_MAX_S: float = 60.0
_BACKOFF_MULTIPLIER: float = 2.0

_MAX_CONSECUTIVE_FAILURES: int = 3


class WatchError(Exception):
    """A collection could not be listed or watched.

    Surfaced verbatim as the collection's error banner.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


@dataclass(frozen=True)
class CollectionSnapshot:
    """The current full state of one watched collection."""

    items: tuple[WatchedResource, ...] = ()
    loaded: bool = False
    error: WatchError | None = None


SnapshotListener = Callable[[CollectionSnapshot], None]


class ResourceWatcher:
    """Watches one custom resource kind in one scope.

    ``namespace=None`` watches the cluster-scoped endpoint.  ``name`` narrows
    the watch to a single object through a ``metadata.name`` field selector,
    which is how the inspect view follows one resource.

    Lifecycle::

        watcher = ResourceWatcher(custom_api, ISSUER, namespace="demo")
        watcher.add_listener(table.on_snapshot)
        await watcher.start()
        # ... runs until cancelled or stop() is called
        await watcher.stop()
    """

    def __init__(
        self,
        api: Any,
        model: ModelDescriptor,
        namespace: str | None = None,
        name: str | None = None,
    ) -> None:
        """Initialise the watcher.

        Args:
            api: A kubernetes_asyncio ``CustomObjectsApi`` instance.
            model: The kind to watch.
            namespace: Namespace to watch; None for the cluster-scoped endpoint.
            name: Optional object name for a single-item watch.
        """
        self._api = api
        self._model = model
        self._namespace = namespace
        self._name = name
        self._label = model.plural if name is None else f"{model.plural}/{name}"
        self._log = get_logger(f"watcher.{model.plural}")

        self._items: dict[tuple[str, str], WatchedResource] = {}
        self._loaded: bool = False
        self._error: WatchError | None = None
        self._listeners: list[SnapshotListener] = []

        self._resource_version: str = ""
        self._needs_list: bool = True
        self._running: bool = False
        self._task: asyncio.Task[None] | None = None

        self._consecutive_failures: int = 0
        self._backoff_s: float = _BACKOFF_MIN_S

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def model(self) -> ModelDescriptor:
        return self._model

    @property
    def namespace(self) -> str | None:
        return self._namespace

    @property
    def snapshot(self) -> CollectionSnapshot:
        return CollectionSnapshot(items=tuple(self._items.values()), loaded=self._loaded, error=self._error)

    def add_listener(self, listener: SnapshotListener) -> None:
        """Register a callback invoked with every new snapshot."""
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    async def start(self) -> None:
        """Start the list/watch loop as a background asyncio task."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._watch_loop(), name=f"watcher-{self._label}")
        self._log.info("watcher_started", watcher=self._label, namespace=self._namespace)

    async def stop(self) -> None:
        """Signal the loop to stop and wait for it to exit cleanly."""
        self._running = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._log.info("watcher_stopped", watcher=self._label)

    # ------------------------------------------------------------------
    # Internal loop
    # ------------------------------------------------------------------

    async def _watch_loop(self) -> None:
        """Main loop; runs until :attr:`_running` is False."""
        while self._running:
            try:
                if self._needs_list:
                    await self._list()
                await self._run_watch()
            except asyncio.CancelledError:
                return
            except ApiException as exc:
                if not self._running:
                    return
                await self._handle_api_exception(exc)
            except Exception as exc:
                if not self._running:
                    return
                await self._handle_loop_exception(exc)

    def _list_call(self) -> tuple[Callable[..., Coroutine[Any, Any, Any]], tuple[Any, ...]]:
        """Return the list function and its positional arguments."""
        m = self._model
        if self._namespace is None:
            return self._api.list_cluster_custom_object, (m.group, m.version, m.plural)
        return self._api.list_namespaced_custom_object, (m.group, m.version, self._namespace, m.plural)

    def _selector_kwargs(self) -> dict[str, Any]:
        if self._name is None:
            return {}
        return {"field_selector": f"metadata.name={self._name}"}

    async def _list(self) -> None:
        """List the collection and replace the snapshot with the result."""
        func, args = self._list_call()
        try:
            result = await func(*args, **self._selector_kwargs())
        except ApiException as exc:
            self._error = WatchError(api_error_message(exc), status=exc.status)
            self._log.warning("list_failed", watcher=self._label, status=exc.status, reason=exc.reason)
            self._emit()
            raise
        except Exception as exc:
            # Transport failures (API server unreachable, timeouts) carry no HTTP status
            self._error = WatchError(str(exc) or type(exc).__name__)
            self._log.warning("list_failed", watcher=self._label, error=str(exc), error_type=type(exc).__name__)
            self._emit()
            raise

        raw_items = result.get("items", []) if isinstance(result, dict) else []
        self._items = {}
        for raw in raw_items:
            if isinstance(raw, dict):
                resource = WatchedResource.from_dict(raw)
                self._items[_key(resource)] = resource

        metadata = result.get("metadata", {}) if isinstance(result, dict) else {}
        self._resource_version = str(metadata.get("resourceVersion", "") or "") if isinstance(metadata, dict) else ""
        self._needs_list = False
        self._loaded = True
        self._error = None
        self._reset_backoff()
        self._log.info(
            "list_complete",
            watcher=self._label,
            items=len(self._items),
            resource_version=self._resource_version,
        )
        self._emit()

    async def _run_watch(self) -> None:
        """Open one watch stream and apply events until it terminates or raises."""
        func, args = self._list_call()
        kwargs: dict[str, Any] = {"allow_watch_bookmarks": True, **self._selector_kwargs()}
        if self._resource_version:
            kwargs["resource_version"] = self._resource_version

        w = watch.Watch()
        try:
            async for raw_event in w.stream(func, *args, **kwargs):
                if not self._running:
                    return
                event_type: str = raw_event.get("type", "")
                raw = raw_event.get("raw_object")
                if not isinstance(raw, dict):
                    obj = raw_event.get("object")
                    raw = obj if isinstance(obj, dict) else {}

                rv = _extract_rv(raw)
                if rv:
                    self._resource_version = rv
                if event_type == "BOOKMARK":
                    continue

                watcher_events_total.labels(kind=self._model.kind.value, event_type=event_type).inc()
                self._apply_event(event_type, raw)
                self._consecutive_failures = 0

            # Stream ended without error (server-side timeout); resume from rv
            self._log.debug("watch_stream_ended", watcher=self._label)
            await self._backoff("stream_end")
        finally:
            await w.close()

    def _apply_event(self, event_type: str, raw: dict[str, Any]) -> None:
        """Apply one ADDED/MODIFIED/DELETED event and emit the new snapshot."""
        resource = WatchedResource.from_dict(raw)
        if not resource.name:
            return
        key = _key(resource)
        if event_type == "DELETED":
            if self._items.pop(key, None) is None:
                return
        elif event_type in ("ADDED", "MODIFIED"):
            self._items[key] = resource
        else:
            self._log.debug("watch_event_ignored", watcher=self._label, event_type=event_type)
            return
        self._emit()

    def _emit(self) -> None:
        """Deliver the current snapshot to every listener."""
        snapshot = self.snapshot
        scope = "cluster" if self._namespace is None else "namespace"
        watched_resources.labels(kind=self._model.kind.value, scope=scope).set(len(snapshot.items))
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:
                self._log.error("listener_failed", watcher=self._label, error=str(exc), exc_info=True)

    # ------------------------------------------------------------------
    # Error handling
    # ------------------------------------------------------------------

    async def _handle_api_exception(self, exc: ApiException) -> None:
        """Route an ApiException to the correct recovery path."""
        status = exc.status
        watcher_errors_total.labels(kind=self._model.kind.value, status_code=str(status)).inc()

        if status == 410:
            # Gone: resource version too old, the next iteration relists
            self._log.warning("watch_gone_410", watcher=self._label)
            watcher_relistings_total.labels(kind=self._model.kind.value).inc()
            self._resource_version = ""
            self._needs_list = True
            return

        self._consecutive_failures += 1
        self._log.warning(
            "watch_api_error",
            watcher=self._label,
            status=status,
            reason=exc.reason,
            consecutive_failures=self._consecutive_failures,
        )
        if self._consecutive_failures >= _MAX_CONSECUTIVE_FAILURES:
            self._needs_list = True
        await self._backoff(str(status))

    async def _handle_loop_exception(self, exc: Exception) -> None:
        """Handle unexpected exceptions from the loop."""
        self._consecutive_failures += 1
        self._log.error(
            "watch_unexpected_error",
            watcher=self._label,
            error=str(exc),
            consecutive_failures=self._consecutive_failures,
            exc_info=True,
        )
        if self._consecutive_failures >= _MAX_CONSECUTIVE_FAILURES:
            self._needs_list = True
        await self._backoff("unexpected")

    async def _backoff(self, reason: str) -> None:
        """Sleep for the current back-off duration, then increase it."""
        delay = min(self._backoff_s, _BACKOFF_MAX_S)
        self._log.debug("watcher_backoff", watcher=self._label, reason=reason, delay_s=delay)
        await asyncio.sleep(delay)
        self._backoff_s = min(self._backoff_s * _BACKOFF_MULTIPLIER, _BACKOFF_MAX_S)

    def _reset_backoff(self) -> None:
        self._backoff_s = _BACKOFF_MIN_S
        self._consecutive_failures = 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _key(resource: WatchedResource) -> tuple[str, str]:
    return (resource.namespace or "", resource.name)


def _extract_rv(raw: dict[str, Any]) -> str:
    """Extract resourceVersion from a raw watch object."""
    metadata = raw.get("metadata")
    if isinstance(metadata, dict):
        rv = metadata.get("resourceVersion", "")
        if rv:
            return str(rv)
    return ""


def api_error_message(exc: ApiException) -> str:
    """Return the API Status ``message`` when the body carries one, else the reason."""
    body = getattr(exc, "body", None)
    if body:
        try:
            data = json.loads(body)
        except (TypeError, ValueError):
            data = None
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
    if exc.reason:
        return f"{exc.status} {exc.reason}" if exc.status else str(exc.reason)
    return f"API request failed with status {exc.status}"
