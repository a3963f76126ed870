"""Dashboard table engine.

A :class:`ResourceTable` subscribes to the watchers of one kind family,
re-merges their snapshots on every emission and exposes the result as a
:class:`TableView` for the presentation layer: display cells, classified
status, available actions and the delete confirmation state.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from secretsboard.actions.workflow import (
    ActionWorkflowController,
    DeleteCollaborator,
    DeleteWorkflowState,
    MenuAction,
    Navigator,
)
from secretsboard.aggregation.columns import COLUMNS
from secretsboard.aggregation.merger import CollectionInput, MergedCollection, merge
from secretsboard.collector.watcher import CollectionSnapshot, SnapshotListener
from secretsboard.models.kinds import KindFamily, ModelDescriptor
from secretsboard.models.resources import ResourceIdentity, Scope, TaggedResource
from secretsboard.observability.logging import get_logger
from secretsboard.status.classifier import StatusBadge, classify


class SnapshotSource(Protocol):
    """What the table needs from a watch adapter."""

    @property
    def model(self) -> ModelDescriptor: ...

    @property
    def snapshot(self) -> CollectionSnapshot: ...

    def add_listener(self, listener: SnapshotListener) -> None: ...


class TableState(StrEnum):
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    READY = "ready"


@dataclass(frozen=True)
class RowView:
    identity: ResourceIdentity
    row: TaggedResource
    cells: tuple[str, ...]
    status: StatusBadge
    actions: tuple[MenuAction, ...]
    menu_open: bool


@dataclass(frozen=True)
class TableView:
    """Everything the presentation layer needs to render one table."""

    name: str
    title: str
    state: TableState
    columns: tuple[str, ...]
    rows: tuple[RowView, ...] = ()
    error: str | None = None
    empty_title: str = ""
    empty_body: str = ""
    delete: DeleteWorkflowState = field(default_factory=DeleteWorkflowState)


_ROW_ACTIONS: tuple[MenuAction, ...] = (MenuAction.INSPECT, MenuAction.DELETE)


class ResourceTable:
    """Merged, classified view over the watchers of one kind family.

    Sources must be given in merge order: the namespaced watcher first and
    the cluster-scoped watcher (if the family has one) second.
    """

    def __init__(
        self,
        family: KindFamily,
        sources: Sequence[SnapshotSource],
        deleter: DeleteCollaborator,
        navigator: Navigator | None = None,
        base_path: str = "",
        default_namespace: str | None = None,
    ) -> None:
        expected = family.models()
        if len(sources) != len(expected):
            raise ValueError(f"{family.name} table needs {len(expected)} sources, got {len(sources)}")
        for source, (model, _) in zip(sources, expected, strict=True):
            if source.model.kind is not model.kind:
                raise ValueError(
                    f"{family.name} table expected a {model.kind.value} source, got {source.model.kind.value}"
                )

        self._family = family
        self._columns = COLUMNS[family.name]
        self._log = get_logger(f"table.{family.name}")
        self._sources = list(sources)
        self._scopes: list[Scope] = [scope for _, scope in expected]
        self._snapshots: list[CollectionSnapshot] = [s.snapshot for s in self._sources]
        self._merged: MergedCollection = MergedCollection()
        self.actions = ActionWorkflowController(
            family,
            deleter,
            navigator=navigator,
            base_path=base_path,
            default_namespace=default_namespace,
        )

        for index, source in enumerate(self._sources):
            source.add_listener(self._listener_for(index))
        self._recompute()

    @property
    def family(self) -> KindFamily:
        return self._family

    @property
    def merged(self) -> MergedCollection:
        return self._merged

    def _listener_for(self, index: int) -> SnapshotListener:
        def _on_snapshot(snapshot: CollectionSnapshot) -> None:
            self._snapshots[index] = snapshot
            self._recompute()

        return _on_snapshot

    def _recompute(self) -> None:
        inputs = [
            CollectionInput.from_snapshot(snapshot, scope, source.model.kind)
            for snapshot, scope, source in zip(self._snapshots, self._scopes, self._sources, strict=True)
        ]
        self._merged = merge(inputs)
        if self._merged.loaded and self._merged.error is None:
            self.actions.prune(r.identity for r in self._merged.rows)
        self._log.debug(
            "table_recomputed",
            loaded=self._merged.loaded,
            rows=len(self._merged.rows),
            error=self._merged.error.message if self._merged.error else None,
        )

    # ------------------------------------------------------------------
    # Rendering boundary
    # ------------------------------------------------------------------

    def find_row(self, scope: Scope, namespace: str | None, name: str) -> TaggedResource | None:
        """Return the merged row with this scope, namespace and name, if any."""
        for row in self._merged.rows:
            if row.scope is scope and row.resource.name == name and row.resource.namespace == (namespace or None):
                return row
        return None

    def row_view(self, row: TaggedResource) -> RowView:
        cells = list(self._columns.cells(row))
        status = classify(row.resource, self._family)
        cells.insert(self._columns.status_index, status.label)
        return RowView(
            identity=row.identity,
            row=row,
            cells=tuple(cells),
            status=status,
            actions=_ROW_ACTIONS,
            menu_open=self.actions.is_menu_open(row.identity),
        )

    def view(self) -> TableView:
        """Render the current merged state.

        A collection error hides every row in favour of the error banner,
        and takes precedence over loading so a failed initial list does not
        spin forever.
        """
        merged = self._merged
        base = {
            "name": self._family.name,
            "title": self._family.title,
            "columns": self._columns.titles,
            "empty_title": self._family.empty_title,
            "empty_body": self._family.empty_body,
            "delete": self.actions.delete_state,
        }
        if merged.error is not None:
            return TableView(state=TableState.ERROR, error=merged.error.message, **base)
        if not merged.loaded:
            return TableView(state=TableState.LOADING, **base)
        if not merged.rows:
            return TableView(state=TableState.EMPTY, **base)
        return TableView(state=TableState.READY, rows=tuple(self.row_view(r) for r in merged.rows), **base)
