"""Environment-variable configuration loader.

Every setting is read from a ``SECRETSBOARD_*`` variable.  Integer values
are clamped to their allowed range; values that cannot be interpreted at
all raise ValueError so that a misconfigured deployment fails at startup.
"""

from __future__ import annotations

import os
import re

from secretsboard.models.config import (
    APIConfig,
    LogConfig,
    SecretsboardConfig,
    UIConfig,
    WatchConfig,
)

_PREFIX = "SECRETSBOARD_"

_VALID_LOG_LEVELS: frozenset[str] = frozenset({"debug", "info", "warning", "error", "critical"})

# RFC 1123 label, the format Kubernetes enforces on namespace names
_NAMESPACE_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


def _env(name: str, default: str) -> str:
    return os.environ.get(_PREFIX + name, default).strip()


def _int_env(name: str, default: int, minimum: int, maximum: int) -> int:
    raw = _env(name, str(default))
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid integer for {_PREFIX}{name}: {raw!r}") from exc
    return max(minimum, min(maximum, value))


def _log_level() -> str:
    level = _env("LOG_LEVEL", "info").lower()
    if level not in _VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log level {level!r}; expected one of {sorted(_VALID_LOG_LEVELS)}")
    return level


def _namespace() -> str:
    namespace = _env("NAMESPACE", "demo")
    if not _NAMESPACE_RE.match(namespace):
        raise ValueError(f"Invalid namespace name: {namespace!r}")
    return namespace


def _base_path() -> str:
    base = _env("BASE_PATH", "/secrets-management").rstrip("/")
    if base and not base.startswith("/"):
        base = "/" + base
    if "inspect" in base.split("/"):
        raise ValueError(f"Invalid base path {base!r}: must not contain an 'inspect' segment")
    return base


def load_config() -> SecretsboardConfig:
    """Build a :class:`SecretsboardConfig` from the process environment."""
    return SecretsboardConfig(
        log=LogConfig(level=_log_level()),
        api=APIConfig(port=_int_env("API_PORT", 8080, 1024, 65535)),
        watch=WatchConfig(namespace=_namespace()),
        ui=UIConfig(
            base_path=_base_path(),
            inspect_timeout_seconds=_int_env("INSPECT_TIMEOUT", 10, 1, 60),
        ),
    )
