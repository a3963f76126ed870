from secretsboard.inspect.view import (
    InspectState,
    InspectView,
    ResourceDetail,
    ResourceInspector,
    ResourceNotFound,
    build_inspect_view,
)

__all__ = [
    "InspectState",
    "InspectView",
    "ResourceDetail",
    "ResourceInspector",
    "ResourceNotFound",
    "build_inspect_view",
]
