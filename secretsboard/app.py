"""Application bootstrap for secretsboard.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → K8s client → watchers → tables
              → inspector → REST

Shutdown is fully graceful: components are stopped in reverse startup order.
Each component's stop error is caught and logged independently so that a
single component failure does not prevent the rest from shutting down cleanly.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING, Any

from secretsboard.config import load_config
from secretsboard.models.config import SecretsboardConfig
from secretsboard.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from secretsboard.aggregation.table import ResourceTable
    from secretsboard.collector.watcher import ResourceWatcher
    from secretsboard.inspect.view import ResourceInspector

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class SecretsboardApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already stopped)
    is safe.
    """

    def __init__(self) -> None:
        self.config: SecretsboardConfig | None = None

        self._k8s_client: bool | None = None
        self._custom_api: Any = None
        self._watchers: list[ResourceWatcher] = []
        self._tables: dict[str, ResourceTable] = {}
        self._inspector: ResourceInspector | None = None
        self._rest_server: object | None = None

        # Background tasks that must be cancelled on shutdown
        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: FilteringBoundLogger | None = None

    @property
    def tables(self) -> dict[str, ResourceTable]:
        return self._tables

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("secretsboard starting", version=_secretsboard_version())

        # --- 3. Kubernetes client ----------------------------------------
        await self._start_k8s_client()

        # --- 4. Watchers and tables --------------------------------------
        await self._start_tables()

        # --- 5. Inspector ------------------------------------------------
        await self._start_inspector()

        # --- 6. REST API -------------------------------------------------
        await self._start_rest()

        self._running = True
        self._log.info("secretsboard started", port=self.config.api.port)

    # ------------------------------------------------------------------
    # Component startup helpers
    # ------------------------------------------------------------------

    async def _start_k8s_client(self) -> None:
        """Initialise the kubernetes-asyncio client from in-cluster config or kubeconfig."""
        assert self._log is not None
        self._log.debug("starting k8s client")
        try:
            import kubernetes_asyncio.config as k8s_config
            from kubernetes_asyncio import client as k8s_client

            try:
                k8s_config.load_incluster_config()  # type: ignore[no-untyped-call]
                self._log.info("k8s client configured from in-cluster service account")
            except k8s_config.ConfigException:
                await k8s_config.load_kube_config()
                self._log.info("k8s client configured from kubeconfig")

            self._custom_api = k8s_client.CustomObjectsApi()
            self._k8s_client = True
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    async def _start_tables(self) -> None:
        """Start one watcher per kind and scope, and build a table per family."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting tables")
        try:
            from secretsboard.actions.delete import CustomObjectDeleter
            from secretsboard.aggregation.table import ResourceTable
            from secretsboard.collector.watcher import ResourceWatcher
            from secretsboard.models.kinds import FAMILIES
            from secretsboard.models.resources import Scope

            deleter = CustomObjectDeleter(self._custom_api)
            namespace = self.config.watch.namespace
            for family in FAMILIES.values():
                sources = [
                    ResourceWatcher(
                        self._custom_api,
                        model,
                        namespace=namespace if scope is Scope.NAMESPACE else None,
                    )
                    for model, scope in family.models()
                ]
                self._tables[family.name] = ResourceTable(
                    family,
                    sources,
                    deleter,
                    base_path=self.config.ui.base_path,
                    default_namespace=namespace,
                )
                self._watchers.extend(sources)

            for watcher in self._watchers:
                await watcher.start()
            self._log.info("tables started", tables=sorted(self._tables), watchers=len(self._watchers))
        except Exception as exc:
            raise _ComponentError("tables", exc) from exc

    async def _start_inspector(self) -> None:
        """Build the inspector, which starts a single-item watcher per request."""
        assert self._log is not None
        assert self.config is not None
        try:
            from secretsboard.collector.watcher import ResourceWatcher
            from secretsboard.inspect.view import ResourceInspector
            from secretsboard.models.kinds import ModelDescriptor

            api = self._custom_api

            def _factory(model: ModelDescriptor, namespace: str | None, name: str) -> ResourceWatcher:
                return ResourceWatcher(api, model, namespace=namespace, name=name)

            self._inspector = ResourceInspector(
                _factory,
                default_namespace=self.config.watch.namespace,
                timeout_s=float(self.config.ui.inspect_timeout_seconds),
            )
            self._log.info("inspector started", timeout_s=self.config.ui.inspect_timeout_seconds)
        except Exception as exc:
            raise _ComponentError("inspector", exc) from exc

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting rest api")
        try:
            import uvicorn

            from secretsboard.api import create_app

            fastapi_app = create_app(tables=self._tables, inspector=self._inspector)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("secretsboard shutting down")

        self._running = False

        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()

        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        self._rest_server = None
        self._inspector = None
        for watcher in reversed(self._watchers):
            await self._stop_component(f"watcher.{watcher.model.plural}", watcher)
        self._watchers.clear()
        self._tables.clear()
        await self._stop_k8s_client()

        log.info("secretsboard stopped")

    async def _stop_component(self, name: str, component: object | None) -> None:
        """Call stop() on a component if it has that method, catching all errors."""
        if component is None:
            return
        log = self._log or get_logger("app")
        stop_fn = getattr(component, "stop", None)
        if stop_fn is None:
            return
        try:
            result = stop_fn()
            if asyncio.iscoroutine(result):
                await asyncio.wait_for(result, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))

    async def _stop_k8s_client(self) -> None:
        """Close the connection pool behind the custom objects API."""
        if self._k8s_client is None:
            return
        log = self._log or get_logger("app")
        try:
            api_client = getattr(self._custom_api, "api_client", None)
            if api_client is not None:
                await api_client.close()
        except Exception as exc:
            log.debug("k8s client close raised (non-fatal)", error=str(exc))
        self._k8s_client = None
        self._custom_api = None


def _secretsboard_version() -> str:
    from secretsboard import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = SecretsboardApp()
    loop = asyncio.get_running_loop()

    shutdown_triggered = False

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        while app._running:
            await asyncio.sleep(1)
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app._running:
            await app.stop()


def run() -> None:
    """Console-script entrypoint for the server."""
    asyncio.run(main())
