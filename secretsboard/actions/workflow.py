"""Per-table row actions and the delete confirmation workflow.

Delete state machine (one per table)::

    idle --request_delete--> confirming --confirm_delete--> deleting
    deleting --success--> idle
    deleting --failure--> confirming   (error_message set, target kept)
    deleting --cancelled--> confirming (target kept, cancellation re-raised)
    confirming --cancel_delete--> idle

A successful delete does not remove the row; the watch stream reports the
removal on its own.  Cancelling while a request is in flight is ignored
because the delete call has no cancellation channel.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum

from secretsboard.models.kinds import KindFamily, ModelDescriptor
from secretsboard.models.resources import ResourceAddress, ResourceIdentity, TaggedResource, WatchedResource
from secretsboard.observability.logging import get_logger
from secretsboard.observability.metrics import delete_requests_total
from secretsboard.routing.resolver import build_inspect_path

DeleteCollaborator = Callable[[ModelDescriptor, WatchedResource], Awaitable[None]]
Navigator = Callable[[str], None]


class PreconditionError(Exception):
    """A workflow method was called in a state that normal UI sequencing never produces."""


class DeletePhase(StrEnum):
    IDLE = "idle"
    CONFIRMING = "confirming"
    DELETING = "deleting"


class MenuAction(StrEnum):
    INSPECT = "inspect"
    DELETE = "delete"


@dataclass(frozen=True)
class DeleteWorkflowState:
    """Snapshot of the delete confirmation surface.

    Attributes:
        phase:         Current state machine phase.
        target:        Resource awaiting confirmation or being deleted.
        error_message: Failure detail of the last attempt, shown for retry.
    """

    phase: DeletePhase = DeletePhase.IDLE
    target: TaggedResource | None = None
    error_message: str | None = None

    @property
    def is_open(self) -> bool:
        return self.phase is not DeletePhase.IDLE

    @property
    def failed(self) -> bool:
        return self.phase is DeletePhase.CONFIRMING and self.error_message is not None


@dataclass
class RowActionState:
    menu_open: bool = False


class ActionWorkflowController:
    """Owns row menu state and the delete workflow of one table.

    Args:
        family: Kind family of the table; selects the delete model per scope.
        deleter: Async delete collaborator ``(model, resource) -> None``.
        navigator: Callback performing a full navigation to a path.
        base_path: Prefix placed before the ``inspect`` segment.
        default_namespace: Namespace used for inspect paths of namespaced
            resources that carry no namespace.
    """

    def __init__(
        self,
        family: KindFamily,
        deleter: DeleteCollaborator,
        navigator: Navigator | None = None,
        base_path: str = "",
        default_namespace: str | None = None,
    ) -> None:
        self._family = family
        self._deleter = deleter
        self._navigator = navigator
        self._base_path = base_path
        self._default_namespace = default_namespace
        self._log = get_logger(f"actions.{family.name}")

        self._rows: dict[ResourceIdentity, RowActionState] = {}
        self._delete = DeleteWorkflowState()

    # ------------------------------------------------------------------
    # Row menus
    # ------------------------------------------------------------------

    @property
    def delete_state(self) -> DeleteWorkflowState:
        return self._delete

    def is_menu_open(self, identity: ResourceIdentity) -> bool:
        state = self._rows.get(identity)
        return state.menu_open if state is not None else False

    def toggle_menu(self, identity: ResourceIdentity) -> bool:
        """Flip the menu of ``identity`` only; return its new state."""
        state = self._rows.setdefault(identity, RowActionState())
        state.menu_open = not state.menu_open
        return state.menu_open

    def close_menu(self, identity: ResourceIdentity) -> None:
        state = self._rows.get(identity)
        if state is not None:
            state.menu_open = False

    def select_menu_item(self, row: TaggedResource, action: MenuAction | str) -> str | None:
        """Close the row's menu and run ``action`` on it.

        Returns the inspect path for :attr:`MenuAction.INSPECT`, else None.
        """
        self.close_menu(row.identity)
        selected = MenuAction(action)
        if selected is MenuAction.INSPECT:
            return self.inspect(row)
        self.request_delete(row)
        return None

    def prune(self, live: Iterable[ResourceIdentity]) -> None:
        """Forget menu state of rows that are no longer in the table."""
        keep = set(live)
        for identity in [i for i in self._rows if i not in keep]:
            del self._rows[identity]

    # ------------------------------------------------------------------
    # Inspect
    # ------------------------------------------------------------------

    def inspect(self, row: TaggedResource) -> str:
        """Navigate to the inspect view of ``row`` and return its path."""
        path = build_inspect_path(self.address_of(row), self._base_path)
        self._log.debug("inspect_navigate", path=path)
        if self._navigator is not None:
            self._navigator(path)
        return path

    def address_of(self, row: TaggedResource) -> ResourceAddress:
        model = self._family.model_for(row.scope)
        if not model.namespaced:
            return ResourceAddress(kind=model.kind, name=row.resource.name)
        namespace = row.resource.namespace or self._default_namespace
        if not namespace:
            raise PreconditionError(f"{model.label} {row.resource.name!r} has no namespace to inspect")
        return ResourceAddress(kind=model.kind, namespace=namespace, name=row.resource.name)

    # ------------------------------------------------------------------
    # Delete workflow
    # ------------------------------------------------------------------

    def request_delete(self, row: TaggedResource) -> DeleteWorkflowState:
        """Open the confirmation surface for ``row``.

        Raises:
            PreconditionError: A delete of a different resource is in flight.
        """
        current = self._delete
        if current.phase is DeletePhase.DELETING:
            if current.target is not None and current.target.identity == row.identity:
                return current
            raise PreconditionError("a delete is already in flight for a different resource")

        self._delete = DeleteWorkflowState(phase=DeletePhase.CONFIRMING, target=row)
        self._log.debug("delete_requested", identity=_identity_str(row.identity))
        return self._delete

    async def confirm_delete(self) -> DeleteWorkflowState:
        """Send the delete for the captured target and settle the workflow.

        Raises:
            PreconditionError: The workflow is not awaiting confirmation.
        """
        current = self._delete
        if current.phase is not DeletePhase.CONFIRMING or current.target is None:
            raise PreconditionError(f"confirm_delete requires phase 'confirming', not {current.phase.value!r}")

        target = current.target
        model = self._family.model_for(target.scope)
        self._delete = dataclasses.replace(current, phase=DeletePhase.DELETING, error_message=None)

        try:
            await self._deleter(model, target.resource)
        except Exception as exc:
            message = str(getattr(exc, "message", "") or exc) or f"Failed to delete {model.label.lower()}"
            self._log.warning(
                "delete_failed",
                kind=model.kind.value,
                identity=_identity_str(target.identity),
                error=message,
            )
            delete_requests_total.labels(kind=model.kind.value, outcome="failure").inc()
            self._delete = DeleteWorkflowState(phase=DeletePhase.CONFIRMING, target=target, error_message=message)
            return self._delete
        except BaseException:
            # Cancelled mid-request: back to confirming, target kept
            self._log.info("delete_interrupted", kind=model.kind.value, identity=_identity_str(target.identity))
            self._delete = DeleteWorkflowState(phase=DeletePhase.CONFIRMING, target=target)
            raise

        delete_requests_total.labels(kind=model.kind.value, outcome="success").inc()
        self._log.info("delete_succeeded", kind=model.kind.value, identity=_identity_str(target.identity))
        self._delete = DeleteWorkflowState()
        return self._delete

    def cancel_delete(self) -> DeleteWorkflowState:
        """Close the confirmation surface unless a request is in flight."""
        if self._delete.phase is DeletePhase.DELETING:
            self._log.debug("delete_cancel_ignored_in_flight")
            return self._delete
        self._delete = DeleteWorkflowState()
        return self._delete


def _identity_str(identity: ResourceIdentity) -> str:
    ns = identity.namespace or "-"
    return f"{identity.kind.value}/{identity.scope.value}/{ns}/{identity.name}"
