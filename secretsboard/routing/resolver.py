"""Inspect path routing.

Inspect paths have the shape::

    {base}/inspect/{plural}/{namespace}/{name}   namespaced resources
    {base}/inspect/{plural}/{name}               cluster-scoped resources

:func:`resolve` parses such a path into a :class:`ResourceAddress` and
:func:`build_inspect_path` produces one.  The segment count decides
whether a namespace is present, so names and namespaces must not contain
``/``; Kubernetes object names never do.
"""

from __future__ import annotations

from secretsboard.models.kinds import MODELS
from secretsboard.models.resources import ResourceAddress, ResourceKind

INSPECT_ANCHOR = "inspect"

RESOURCE_TYPE_TOKENS: dict[str, ResourceKind] = {
    "certificates": ResourceKind.CERTIFICATE,
    "issuers": ResourceKind.ISSUER,
    "clusterissuers": ResourceKind.CLUSTER_ISSUER,
    "externalsecrets": ResourceKind.EXTERNAL_SECRET,
    "secretstores": ResourceKind.SECRET_STORE,
    "clustersecretstores": ResourceKind.CLUSTER_SECRET_STORE,
}

_TOKENS_BY_KIND: dict[ResourceKind, str] = {kind: token for token, kind in RESOURCE_TYPE_TOKENS.items()}


class ResolutionError(Exception):
    """An inspect path could not be turned into a resource address."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Cannot resolve {path!r}: {detail}")
        self.path = path
        self.detail = detail


class UnknownResourceType(ResolutionError):
    """The resource type token is not one of the supported kinds."""

    def __init__(self, path: str, token: str) -> None:
        super().__init__(path, f'the resource type "{token}" is not supported')
        self.token = token


class MalformedPath(ResolutionError):
    """The path does not match the inspect route pattern."""


def is_cluster_scoped(kind: ResourceKind) -> bool:
    return not MODELS[kind].namespaced


def resolve(path: str, default_namespace: str | None = None) -> ResourceAddress:
    """Parse an inspect ``path`` into a :class:`ResourceAddress`.

    Args:
        path: URL path, with or without a base prefix before ``inspect``.
        default_namespace: Namespace assumed for a namespaced kind whose
            path carries only a name.

    Raises:
        UnknownResourceType: The type token is not in the mapping table.
        MalformedPath: Anything else that does not fit the route pattern.
    """
    parts = path.split("?", 1)[0].rstrip("/").split("/")
    try:
        anchor = parts.index(INSPECT_ANCHOR)
    except ValueError:
        raise MalformedPath(path, f"missing '{INSPECT_ANCHOR}' segment") from None

    if anchor + 1 >= len(parts) or not parts[anchor + 1]:
        raise MalformedPath(path, "missing resource type")
    token = parts[anchor + 1]
    kind = RESOURCE_TYPE_TOKENS.get(token)
    if kind is None:
        raise UnknownResourceType(path, token)

    trailing = parts[anchor + 2 :]
    if not trailing:
        raise MalformedPath(path, "missing resource name")
    if len(trailing) > 2:
        raise MalformedPath(path, f"expected at most namespace and name, got {len(trailing)} segments")
    if not all(trailing):
        raise MalformedPath(path, "empty path segment")

    if len(trailing) == 2:
        if is_cluster_scoped(kind):
            raise MalformedPath(path, f"{kind.value} is cluster-scoped and takes no namespace")
        return ResourceAddress(kind=kind, namespace=trailing[0], name=trailing[1])

    name = trailing[0]
    if is_cluster_scoped(kind):
        return ResourceAddress(kind=kind, namespace=None, name=name)
    if not default_namespace:
        raise MalformedPath(path, f"{kind.value} is namespaced but the path has no namespace")
    return ResourceAddress(kind=kind, namespace=default_namespace, name=name)


def build_inspect_path(address: ResourceAddress, base_path: str = "") -> str:
    """Return the inspect path for ``address``; the inverse of :func:`resolve`."""
    segments = [base_path.rstrip("/"), INSPECT_ANCHOR, _TOKENS_BY_KIND[address.kind]]
    if address.namespace is not None and not is_cluster_scoped(address.kind):
        segments.append(address.namespace)
    segments.append(address.name)
    return "/".join(segments)
