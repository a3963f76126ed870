"""Delete collaborator backed by the Kubernetes custom objects API."""

from __future__ import annotations

from typing import Any

from kubernetes_asyncio.client.exceptions import ApiException

from secretsboard.collector.watcher import api_error_message
from secretsboard.models.kinds import ModelDescriptor
from secretsboard.models.resources import WatchedResource
from secretsboard.observability.logging import get_logger


class DeleteFailure(Exception):
    """A delete request was rejected; recoverable by retrying or cancelling."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class CustomObjectDeleter:
    """Deletes custom resources through a kubernetes_asyncio ``CustomObjectsApi``.

    The model decides which endpoint is used: cluster-scoped models go
    through ``delete_cluster_custom_object`` regardless of any namespace on
    the object.
    """

    def __init__(self, api: Any) -> None:
        self._api = api
        self._log = get_logger("actions.delete")

    async def __call__(self, model: ModelDescriptor, resource: WatchedResource) -> None:
        try:
            if model.namespaced:
                if not resource.namespace:
                    raise DeleteFailure(f"{model.label} {resource.name!r} has no namespace")
                await self._api.delete_namespaced_custom_object(
                    model.group, model.version, resource.namespace, model.plural, resource.name
                )
            else:
                await self._api.delete_cluster_custom_object(model.group, model.version, model.plural, resource.name)
        except ApiException as exc:
            self._log.warning(
                "delete_rejected",
                kind=model.kind.value,
                namespace=resource.namespace,
                name=resource.name,
                status=exc.status,
                reason=exc.reason,
            )
            raise DeleteFailure(api_error_message(exc), status=exc.status) from exc

        self._log.info("delete_accepted", kind=model.kind.value, namespace=resource.namespace, name=resource.name)
