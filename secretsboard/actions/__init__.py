from secretsboard.actions.delete import CustomObjectDeleter, DeleteFailure
from secretsboard.actions.workflow import (
    ActionWorkflowController,
    DeletePhase,
    DeleteWorkflowState,
    MenuAction,
    PreconditionError,
)

__all__ = [
    "ActionWorkflowController",
    "CustomObjectDeleter",
    "DeleteFailure",
    "DeletePhase",
    "DeleteWorkflowState",
    "MenuAction",
    "PreconditionError",
]
