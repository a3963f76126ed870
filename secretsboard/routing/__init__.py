from secretsboard.routing.resolver import (
    MalformedPath,
    ResolutionError,
    UnknownResourceType,
    build_inspect_path,
    resolve,
)

__all__ = ["MalformedPath", "ResolutionError", "UnknownResourceType", "build_inspect_path", "resolve"]
