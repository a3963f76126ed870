"""Watched resource data structures.

Every custom resource the dashboard observes is parsed from its raw watch
dict into a :class:`WatchedResource`.  Only the fields the dashboard reads
are lifted out; ``spec`` and ``status`` stay opaque and the raw dict is
kept for the inspect view.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, NamedTuple


class ResourceKind(StrEnum):
    """Concrete custom resource kinds shown by the dashboard."""

    CERTIFICATE = "Certificate"
    ISSUER = "Issuer"
    CLUSTER_ISSUER = "ClusterIssuer"
    EXTERNAL_SECRET = "ExternalSecret"
    SECRET_STORE = "SecretStore"
    CLUSTER_SECRET_STORE = "ClusterSecretStore"


class Scope(StrEnum):
    """Whether a resource lives in a namespace or cluster-wide."""

    NAMESPACE = "Namespace"
    CLUSTER = "Cluster"


@dataclass(frozen=True)
class Condition:
    """One entry of ``status.conditions``."""

    type: str
    status: str
    reason: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class ObjectMeta:
    """Subset of ``metadata`` the dashboard displays."""

    name: str
    namespace: str | None = None
    creation_timestamp: str = ""
    uid: str | None = None
    resource_version: str | None = None
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class WatchedResource:
    """A custom resource as delivered by a watch snapshot.

    Attributes:
        metadata:   Parsed object metadata.  ``namespace`` is None for
                    cluster-scoped objects.
        spec:       Kind-specific spec, never validated.
        status:     Raw status dict (may be empty).
        conditions: ``status.conditions`` in wire order.
        raw:        The original dict from the API server.
    """

    metadata: ObjectMeta
    spec: dict[str, Any] = field(default_factory=dict)
    status: dict[str, Any] = field(default_factory=dict)
    conditions: tuple[Condition, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str | None:
        return self.metadata.namespace

    @property
    def derived_scope(self) -> Scope:
        """Namespace presence is the only scope discriminator."""
        return Scope.NAMESPACE if self.metadata.namespace else Scope.CLUSTER

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> WatchedResource:
        """Parse a raw custom object dict.

        Malformed ``status`` or ``conditions`` values parse to empty
        collections rather than raising.
        """
        metadata = raw.get("metadata")
        if not isinstance(metadata, dict):
            metadata = {}
        spec = raw.get("spec")
        status = raw.get("status")
        return cls(
            metadata=ObjectMeta(
                name=str(metadata.get("name", "")),
                namespace=str(metadata["namespace"]) if metadata.get("namespace") else None,
                creation_timestamp=str(metadata.get("creationTimestamp", "") or ""),
                uid=_optional_str(metadata.get("uid")),
                resource_version=_optional_str(metadata.get("resourceVersion")),
                labels=_str_map(metadata.get("labels")),
                annotations=_str_map(metadata.get("annotations")),
            ),
            spec=spec if isinstance(spec, dict) else {},
            status=status if isinstance(status, dict) else {},
            conditions=_parse_conditions(status),
            raw=raw,
        )


class ResourceIdentity(NamedTuple):
    """Structured row key: (kind, scope, namespace, name)."""

    kind: ResourceKind
    scope: Scope
    namespace: str | None
    name: str


@dataclass(frozen=True)
class TaggedResource:
    """A watched resource tagged with the scope of the collection it came from."""

    resource: WatchedResource
    scope: Scope
    kind: ResourceKind

    @property
    def identity(self) -> ResourceIdentity:
        return ResourceIdentity(self.kind, self.scope, self.resource.namespace, self.resource.name)


@dataclass(frozen=True)
class ResourceAddress:
    """Concrete coordinate of a single resource, produced by the path resolver."""

    kind: ResourceKind
    name: str
    namespace: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _optional_str(value: object) -> str | None:
    return str(value) if value else None


def _str_map(value: object) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): str(v) for k, v in value.items()}


def _parse_conditions(status: object) -> tuple[Condition, ...]:
    if not isinstance(status, dict):
        return ()
    raw_conditions = status.get("conditions")
    if not isinstance(raw_conditions, list):
        return ()
    conditions: list[Condition] = []
    for entry in raw_conditions:
        if not isinstance(entry, dict):
            continue
        conditions.append(
            Condition(
                type=str(entry.get("type", "")),
                status=str(entry.get("status", "")),
                reason=_optional_str(entry.get("reason")),
                message=_optional_str(entry.get("message")),
            )
        )
    return tuple(conditions)
