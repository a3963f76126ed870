"""Configuration data structures, populated by :func:`secretsboard.config.load_config`."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class LogConfig:
    level: str = "info"


@dataclass(frozen=True)
class APIConfig:
    port: int = 8080


@dataclass(frozen=True)
class WatchConfig:
    """Scope of the namespaced watches.

    ``namespace`` is both the namespace every namespaced table watches and
    the fallback used for inspect paths that omit the namespace segment.
    """

    namespace: str = "demo"


@dataclass(frozen=True)
class UIConfig:
    base_path: str = "/secrets-management"
    inspect_timeout_seconds: int = 10


@dataclass(frozen=True)
class SecretsboardConfig:
    log: LogConfig = field(default_factory=LogConfig)
    api: APIConfig = field(default_factory=APIConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    ui: UIConfig = field(default_factory=UIConfig)
