"""Status classification from a resource's condition list.

The controllers behind every dashboard kind report reconciliation through
a ``Ready`` condition.  External secrets additionally report
``SecretSynced``, which separates a secret that is still reconciling from
one whose sync conclusively failed.
"""

from __future__ import annotations

from dataclasses import dataclass

from secretsboard.models.kinds import KindFamily, Severity
from secretsboard.models.resources import Condition, WatchedResource

READY_CONDITION = "Ready"

UNKNOWN_LABEL = "Unknown"
SYNC_FAILED_LABEL = "Sync Failed"


@dataclass(frozen=True)
class StatusBadge:
    label: str
    severity: Severity


def find_condition(conditions: tuple[Condition, ...], condition_type: str) -> Condition | None:
    """Return the first condition of ``condition_type``; later duplicates are ignored."""
    for condition in conditions:
        if condition.type == condition_type:
            return condition
    return None


def classify(resource: WatchedResource, family: KindFamily) -> StatusBadge:
    """Map ``resource`` to a status badge for its family.

    Never raises: a resource without status or conditions is ``Unknown``.
    """
    ready = find_condition(resource.conditions, READY_CONDITION)
    if ready is None:
        return StatusBadge(UNKNOWN_LABEL, Severity.WARNING)

    if ready.status == "True":
        return StatusBadge(family.positive_label, Severity.SUCCESS)

    if family.secondary_condition_type is not None:
        secondary = find_condition(resource.conditions, family.secondary_condition_type)
        if secondary is not None and secondary.status == "False":
            return StatusBadge(SYNC_FAILED_LABEL, Severity.DANGER)

    return StatusBadge(family.negative_label, family.negative_severity)
