"""Per-kind descriptors.

One :class:`ModelDescriptor` per concrete custom resource kind and one
:class:`KindFamily` per dashboard table.  A family groups the namespaced
and (optionally) cluster-scoped variant of the same logical kind, so that
classification, merging and deletion run through a single table-driven
engine instead of one copy per kind.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from secretsboard.models.resources import ResourceKind, Scope


class Severity(StrEnum):
    """Visual severity of a status badge."""

    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"


@dataclass(frozen=True)
class ModelDescriptor:
    """API coordinates and display labels for one concrete kind."""

    group: str
    version: str
    kind: ResourceKind
    plural: str
    label: str
    label_plural: str
    abbr: str
    namespaced: bool

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}"


@dataclass(frozen=True)
class KindFamily:
    """Descriptor of one dashboard table.

    Attributes:
        name:                     Table key, also the REST path segment.
        title:                    Human title of the table.
        namespaced:               Model of the namespaced variant.
        cluster:                  Model of the cluster-scoped variant, if any.
        positive_label:           Badge label when ``Ready=True``.
        negative_label:           Badge label when not ready.
        negative_severity:        Severity of ``negative_label``.
        secondary_condition_type: Condition whose explicit ``False`` marks a
                                  conclusive failure (external secrets only).
        empty_title / empty_body: Texts shown when the table has no rows.
    """

    name: str
    title: str
    namespaced: ModelDescriptor
    cluster: ModelDescriptor | None
    positive_label: str
    negative_label: str
    negative_severity: Severity
    secondary_condition_type: str | None
    empty_title: str
    empty_body: str

    @property
    def is_ever_cluster_scoped(self) -> bool:
        return self.cluster is not None

    def model_for(self, scope: Scope) -> ModelDescriptor:
        """Return the model of the variant matching ``scope``.

        Families without a cluster variant always resolve to the namespaced
        model.
        """
        if scope is Scope.CLUSTER and self.cluster is not None:
            return self.cluster
        return self.namespaced

    def models(self) -> list[tuple[ModelDescriptor, Scope]]:
        """Return (model, scope) pairs in merge order: namespaced first."""
        pairs = [(self.namespaced, Scope.NAMESPACE)]
        if self.cluster is not None:
            pairs.append((self.cluster, Scope.CLUSTER))
        return pairs


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

_CERT_MANAGER_GROUP = "cert-manager.io"
_CERT_MANAGER_VERSION = "v1"
_ESO_GROUP = "external-secrets.io"
_ESO_VERSION = "v1beta1"

CERTIFICATE = ModelDescriptor(
    group=_CERT_MANAGER_GROUP,
    version=_CERT_MANAGER_VERSION,
    kind=ResourceKind.CERTIFICATE,
    plural="certificates",
    label="Certificate",
    label_plural="Certificates",
    abbr="cert",
    namespaced=True,
)

ISSUER = ModelDescriptor(
    group=_CERT_MANAGER_GROUP,
    version=_CERT_MANAGER_VERSION,
    kind=ResourceKind.ISSUER,
    plural="issuers",
    label="Issuer",
    label_plural="Issuers",
    abbr="iss",
    namespaced=True,
)

CLUSTER_ISSUER = ModelDescriptor(
    group=_CERT_MANAGER_GROUP,
    version=_CERT_MANAGER_VERSION,
    kind=ResourceKind.CLUSTER_ISSUER,
    plural="clusterissuers",
    label="ClusterIssuer",
    label_plural="ClusterIssuers",
    abbr="ciss",
    namespaced=False,
)

EXTERNAL_SECRET = ModelDescriptor(
    group=_ESO_GROUP,
    version=_ESO_VERSION,
    kind=ResourceKind.EXTERNAL_SECRET,
    plural="externalsecrets",
    label="ExternalSecret",
    label_plural="ExternalSecrets",
    abbr="es",
    namespaced=True,
)

SECRET_STORE = ModelDescriptor(
    group=_ESO_GROUP,
    version=_ESO_VERSION,
    kind=ResourceKind.SECRET_STORE,
    plural="secretstores",
    label="SecretStore",
    label_plural="SecretStores",
    abbr="ss",
    namespaced=True,
)

CLUSTER_SECRET_STORE = ModelDescriptor(
    group=_ESO_GROUP,
    version=_ESO_VERSION,
    kind=ResourceKind.CLUSTER_SECRET_STORE,
    plural="clustersecretstores",
    label="ClusterSecretStore",
    label_plural="ClusterSecretStores",
    abbr="css",
    namespaced=False,
)

MODELS: dict[ResourceKind, ModelDescriptor] = {
    m.kind: m
    for m in (CERTIFICATE, ISSUER, CLUSTER_ISSUER, EXTERNAL_SECRET, SECRET_STORE, CLUSTER_SECRET_STORE)
}

# ---------------------------------------------------------------------------
# Families
# ---------------------------------------------------------------------------

CERTIFICATES = KindFamily(
    name="certificates",
    title="Certificates",
    namespaced=CERTIFICATE,
    cluster=None,
    positive_label="Ready",
    negative_label="Not Ready",
    negative_severity=Severity.DANGER,
    secondary_condition_type=None,
    empty_title="No certificates found",
    empty_body="No cert-manager certificates are currently available in the watched namespace.",
)

ISSUERS = KindFamily(
    name="issuers",
    title="Issuers",
    namespaced=ISSUER,
    cluster=CLUSTER_ISSUER,
    positive_label="Ready",
    negative_label="Not Ready",
    negative_severity=Severity.DANGER,
    secondary_condition_type=None,
    empty_title="No issuers found",
    empty_body="No cert-manager issuers are currently available in the watched namespace or cluster.",
)

EXTERNAL_SECRETS = KindFamily(
    name="externalsecrets",
    title="External Secrets",
    namespaced=EXTERNAL_SECRET,
    cluster=None,
    positive_label="Synced",
    negative_label="Syncing",
    negative_severity=Severity.INFO,
    secondary_condition_type="SecretSynced",
    empty_title="No external secrets found",
    empty_body="No external-secrets-operator ExternalSecrets are currently available in the watched namespace.",
)

SECRET_STORES = KindFamily(
    name="secretstores",
    title="Secret Stores",
    namespaced=SECRET_STORE,
    cluster=CLUSTER_SECRET_STORE,
    positive_label="Ready",
    negative_label="Not Ready",
    negative_severity=Severity.DANGER,
    secondary_condition_type=None,
    empty_title="No secret stores found",
    empty_body=(
        "No external-secrets-operator SecretStores are currently available in the watched namespace or cluster."
    ),
)

FAMILIES: dict[str, KindFamily] = {f.name: f for f in (CERTIFICATES, ISSUERS, EXTERNAL_SECRETS, SECRET_STORES)}


def family_for_kind(kind: ResourceKind) -> KindFamily:
    """Return the family whose namespaced or cluster model is ``kind``."""
    for family in FAMILIES.values():
        if family.namespaced.kind is kind or (family.cluster is not None and family.cluster.kind is kind):
            return family
    raise KeyError(kind)
