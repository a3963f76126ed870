"""Merging of independently watched collections into one table.

The namespaced and cluster-scoped variants of a kind (Issuer and
ClusterIssuer, SecretStore and ClusterSecretStore) are watched separately
but rendered as one list.  Each item is tagged with the scope of the
collection it came from; namespace presence on the wire is not consulted
here.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from secretsboard.collector.watcher import CollectionSnapshot, WatchError
from secretsboard.models.resources import ResourceKind, Scope, TaggedResource, WatchedResource


@dataclass(frozen=True)
class CollectionInput:
    """One constituent collection of a merge."""

    items: tuple[WatchedResource, ...]
    loaded: bool
    error: WatchError | None
    scope: Scope
    kind: ResourceKind

    @classmethod
    def from_snapshot(cls, snapshot: CollectionSnapshot, scope: Scope, kind: ResourceKind) -> CollectionInput:
        return cls(items=snapshot.items, loaded=snapshot.loaded, error=snapshot.error, scope=scope, kind=kind)


@dataclass(frozen=True)
class MergedCollection:
    rows: tuple[TaggedResource, ...] = ()
    loaded: bool = False
    error: WatchError | None = None


def merge(inputs: Sequence[CollectionInput]) -> MergedCollection:
    """Combine ``inputs`` into one ordered, scope-tagged collection.

    ``loaded`` is true only when every input is loaded.  ``error`` is the
    first error in input order.  Rows are produced only when every input
    is loaded and none has errored; they are the inputs' items concatenated
    in input order, neither sorted nor de-duplicated.
    """
    loaded = all(i.loaded for i in inputs)
    error = next((i.error for i in inputs if i.error is not None), None)

    if error is not None or not loaded:
        return MergedCollection(rows=(), loaded=loaded, error=error)

    rows = tuple(
        TaggedResource(resource=item, scope=i.scope, kind=i.kind) for i in inputs for item in i.items
    )
    return MergedCollection(rows=rows, loaded=True, error=None)
