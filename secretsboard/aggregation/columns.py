"""Display columns per kind family.

Each family maps a tagged resource to a tuple of plain display strings.
The status badge is computed separately by the classifier and placed in
the family's status column by the table.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from secretsboard.models.resources import Scope, TaggedResource

STATUS_COLUMN = "Status"


@dataclass(frozen=True)
class ColumnSet:
    """Column titles and the function producing the non-status cells.

    ``titles`` includes :data:`STATUS_COLUMN`; ``cells`` returns one value
    for every other title, in order.
    """

    titles: tuple[str, ...]
    cells: Callable[[TaggedResource], tuple[str, ...]]

    @property
    def status_index(self) -> int:
        return self.titles.index(STATUS_COLUMN)


def _get(data: Any, *path: str) -> Any:
    """Walk nested dicts, returning None on the first missing key."""
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _ref(spec: dict[str, Any], field: str) -> str:
    name = _get(spec, field, "name")
    if not name:
        return "-"
    kind = _get(spec, field, "kind")
    return f"{name} ({kind})" if kind else str(name)


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------


def _certificate_cells(row: TaggedResource) -> tuple[str, ...]:
    spec = row.resource.spec
    dns_names = spec.get("dnsNames")
    if isinstance(dns_names, list) and dns_names:
        names = ", ".join(str(n) for n in dns_names)
    else:
        names = str(spec.get("commonName") or "-")
    return (
        row.resource.name,
        row.resource.namespace or "-",
        str(spec.get("secretName") or "-"),
        _ref(spec, "issuerRef"),
        names,
    )


# ---------------------------------------------------------------------------
# Issuers
# ---------------------------------------------------------------------------


def issuer_type(spec: dict[str, Any]) -> str:
    if spec.get("acme") is not None:
        return "ACME"
    if spec.get("ca") is not None:
        return "CA"
    if spec.get("selfSigned") is not None:
        return "Self-Signed"
    if spec.get("vault") is not None:
        return "Vault"
    return "Unknown"


def issuer_details(spec: dict[str, Any]) -> str:
    if spec.get("acme") is not None:
        return str(_get(spec, "acme", "server") or "-")
    if spec.get("ca") is not None:
        return str(_get(spec, "ca", "secretName") or "-")
    if spec.get("vault") is not None:
        return str(_get(spec, "vault", "server") or "-")
    return "-"


def _issuer_cells(row: TaggedResource) -> tuple[str, ...]:
    spec = row.resource.spec
    return (
        row.resource.name,
        "Issuer" if row.scope is Scope.NAMESPACE else "ClusterIssuer",
        row.scope.value,
        issuer_type(spec),
        issuer_details(spec),
    )


# ---------------------------------------------------------------------------
# External secrets
# ---------------------------------------------------------------------------


def _external_secret_cells(row: TaggedResource) -> tuple[str, ...]:
    spec = row.resource.spec
    return (
        row.resource.name,
        row.resource.namespace or "-",
        str(_get(spec, "target", "name") or "-"),
        _ref(spec, "secretStoreRef"),
        str(spec.get("refreshInterval") or "Not set"),
    )


# ---------------------------------------------------------------------------
# Secret stores
# ---------------------------------------------------------------------------

# (provider key, display name), checked in order
_PROVIDERS: tuple[tuple[str, str], ...] = (
    ("aws", "AWS"),
    ("azurekv", "Azure Key Vault"),
    ("gcpsm", "Google Secret Manager"),
    ("vault", "HashiCorp Vault"),
    ("kubernetes", "Kubernetes"),
    ("doppler", "Doppler"),
    ("onepassword", "1Password"),
    ("gitlab", "GitLab"),
    ("fake", "Fake (Testing)"),
)


def _provider(spec: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
    provider = spec.get("provider")
    if not isinstance(provider, dict):
        return None, {}
    for key, _ in _PROVIDERS:
        config = provider.get(key)
        if config is not None:
            return key, config if isinstance(config, dict) else {}
    return None, {}


def provider_type(spec: dict[str, Any]) -> str:
    key, _ = _provider(spec)
    return dict(_PROVIDERS).get(key or "", "Unknown")


def provider_details(spec: dict[str, Any]) -> str:
    key, config = _provider(spec)
    if key == "aws":
        return f"{config.get('service', '-')} ({config.get('region') or 'default'})"
    if key == "fake":
        data = config.get("data")
        return f"{len(data) if isinstance(data, list) else 0} entries"
    if key is None:
        return "-"
    field, fallback = _PROVIDER_DETAIL_FIELDS[key]
    return str(config.get(field) or fallback)


# provider key -> (config field shown as detail, fallback when unset)
_PROVIDER_DETAIL_FIELDS: dict[str, tuple[str, str]] = {
    "azurekv": ("vaultUrl", "-"),
    "gcpsm": ("projectId", "-"),
    "vault": ("server", "-"),
    "kubernetes": ("server", "In-cluster"),
    "doppler": ("apiUrl", "Default API"),
    "onepassword": ("connectHost", "-"),
    "gitlab": ("url", "gitlab.com"),
}


def _secret_store_cells(row: TaggedResource) -> tuple[str, ...]:
    spec = row.resource.spec
    return (
        row.resource.name,
        "SecretStore" if row.scope is Scope.NAMESPACE else "ClusterSecretStore",
        row.scope.value,
        provider_type(spec),
        provider_details(spec),
    )


COLUMNS: dict[str, ColumnSet] = {
    "certificates": ColumnSet(
        titles=("Name", "Namespace", "Secret", "Issuer", "DNS Names", STATUS_COLUMN),
        cells=_certificate_cells,
    ),
    "issuers": ColumnSet(
        titles=("Name", "Type", "Scope", "Issuer Type", "Details", STATUS_COLUMN),
        cells=_issuer_cells,
    ),
    "externalsecrets": ColumnSet(
        titles=("Name", "Namespace", "Target Secret", "Secret Store", "Refresh Interval", STATUS_COLUMN),
        cells=_external_secret_cells,
    ),
    "secretstores": ColumnSet(
        titles=("Name", "Type", "Scope", "Provider", STATUS_COLUMN, "Details"),
        cells=_secret_store_cells,
    ),
}
