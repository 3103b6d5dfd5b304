"""Kubernetes API adapter for Argo CD Application resources."""

from __future__ import annotations

from functools import partial
from http import HTTPStatus
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from kubernetes import client, watch
from kubernetes.client.exceptions import ApiException
from pydantic import ValidationError
from urllib3.exceptions import HTTPError as TransportError

from argocdsyncer.domain.errors import (
    StoreConflictError,
    StoreError,
    StoreUnavailableError,
    WatchExpiredError,
)
from argocdsyncer.domain.model import NamespacedName
from argocdsyncer.domain.ports.events import ApplicationEvent, EventType

from .connection import RequestThrottle, load_api_client
from .schema import ApplicationListPayload, StatusPayload, WatchEventPayload
from .translator import application_to_payload, parse_application

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from argocdsyncer.config import KubernetesConfig
    from argocdsyncer.domain.model import Application

log = getLogger(__name__)

APPLICATION_GROUP: Final[str] = "argoproj.io"
APPLICATION_VERSION: Final[str] = "v1alpha1"
APPLICATION_PLURAL: Final[str] = "applications"
LIST_PAGE_SIZE: Final[int] = 500
# Slack on top of the server-side watch timeout before the socket read gives up.
WATCH_READ_SLACK_SECONDS: Final[int] = 30

_RETRYABLE_STATUS = frozenset({HTTPStatus.TOO_MANY_REQUESTS}) | frozenset(
    status for status in HTTPStatus if status >= HTTPStatus.INTERNAL_SERVER_ERROR
)
_WATCH_EVENT_TYPES: Final[dict[str, EventType]] = {
    "ADDED": EventType.ADDED,
    "MODIFIED": EventType.MODIFIED,
    "DELETED": EventType.DELETED,
}


def _target(key: NamespacedName | None) -> str:
    return str(key) if key is not None else "applications"


def _status_message(exc: ApiException) -> str:
    if not exc.body:
        return exc.reason or "no response body"
    try:
        status = StatusPayload.model_validate_json(exc.body)
    except ValidationError:
        body = exc.body.decode() if isinstance(exc.body, bytes) else str(exc.body)
        return body.strip() or exc.reason or "no response body"
    return status.message or status.reason or exc.reason or "no message"


def store_error(
    exc: ApiException,
    *,
    operation: str,
    key: NamespacedName | None = None,
) -> StoreError:
    """Translate an API failure into the matching :class:`StoreError`."""

    status_code = exc.status or None
    message = f"{operation} {_target(key)} failed with HTTP {status_code}: "
    message += _status_message(exc)
    if status_code == HTTPStatus.CONFLICT:
        return StoreConflictError(message, key=key, status_code=status_code)
    if status_code == HTTPStatus.GONE:
        return WatchExpiredError(message, key=key, status_code=status_code)
    if status_code is None or status_code in _RETRYABLE_STATUS:
        return StoreUnavailableError(message, key=key, status_code=status_code)
    return StoreError(message, key=key, status_code=status_code)


class KubernetesApplicationStore:
    """Application store and event source backed by ``CustomObjectsApi``.

    One instance is shared by every worker thread: the API client keeps one
    connection pool and the throttle enforces one request budget for all of
    them.
    """

    def __init__(
        self,
        *,
        config: KubernetesConfig,
        api: client.CustomObjectsApi | None = None,
        watch_factory: Callable[[], watch.Watch] = watch.Watch,
        throttle: RequestThrottle | None = None,
    ) -> None:
        self._config = config
        self._api = api if api is not None else client.CustomObjectsApi(load_api_client(config))
        self._watch_factory = watch_factory
        if throttle is None and config.ratelimit is not None:
            throttle = RequestThrottle(config.ratelimit)
        self._throttle = throttle

    def get(self, key: NamespacedName) -> Application | None:
        payload = self._call(
            "get",
            partial(
                self._api.get_namespaced_custom_object,
                APPLICATION_GROUP,
                APPLICATION_VERSION,
                key.namespace,
                APPLICATION_PLURAL,
                key.name,
            ),
            key=key,
            missing_ok=True,
        )
        if payload is None:
            return None
        return self._parse(payload, operation="get", key=key)

    def create(self, application: Application) -> Application:
        key = application.key
        body = application_to_payload(application)
        body["metadata"].pop("resourceVersion", None)
        payload = self._call(
            "create",
            partial(
                self._api.create_namespaced_custom_object,
                APPLICATION_GROUP,
                APPLICATION_VERSION,
                key.namespace,
                APPLICATION_PLURAL,
                body,
            ),
            key=key,
        )
        return self._parse(payload, operation="create", key=key)

    def update(self, application: Application) -> Application:
        key = application.key
        if application.resource_version is None:
            raise StoreConflictError(f"update {key} requires a resource version", key=key)
        payload = self._call(
            "update",
            partial(
                self._api.replace_namespaced_custom_object,
                APPLICATION_GROUP,
                APPLICATION_VERSION,
                key.namespace,
                APPLICATION_PLURAL,
                key.name,
                application_to_payload(application),
            ),
            key=key,
        )
        return self._parse(payload, operation="update", key=key)

    def delete(self, key: NamespacedName) -> None:
        payload = self._call(
            "delete",
            partial(
                self._api.delete_namespaced_custom_object,
                APPLICATION_GROUP,
                APPLICATION_VERSION,
                key.namespace,
                APPLICATION_PLURAL,
                key.name,
            ),
            key=key,
            missing_ok=True,
        )
        if payload is None:
            log.debug("Application %s was already absent", key)

    def list_keys(self) -> tuple[list[NamespacedName], str | None]:
        keys: list[NamespacedName] = []
        continue_token: str | None = None
        while True:
            params: dict[str, Any] = {"limit": LIST_PAGE_SIZE}
            if continue_token:
                params["_continue"] = continue_token
            payload = self._call(
                "list",
                partial(
                    self._api.list_cluster_custom_object,
                    APPLICATION_GROUP,
                    APPLICATION_VERSION,
                    APPLICATION_PLURAL,
                    **params,
                ),
            )
            try:
                page = ApplicationListPayload.model_validate(payload)
            except ValidationError as exc:
                msg = f"list applications returned an invalid payload: {exc}"
                raise StoreError(msg) from exc
            for item in page.items:
                metadata = item.get("metadata") or {}
                keys.append(NamespacedName(namespace=metadata["namespace"], name=metadata["name"]))
            continue_token = page.metadata.continue_token
            if not continue_token:
                log.debug("Listed %s applications", len(keys))
                return keys, page.metadata.resource_version

    def watch(
        self,
        resource_version: str | None,
        handler: Callable[[ApplicationEvent], None],
        *,
        should_stop: Callable[[], bool],
    ) -> str | None:
        params: dict[str, Any] = {
            "allow_watch_bookmarks": True,
            "timeout_seconds": self._config.watch_timeout_seconds,
            "_request_timeout": self._config.watch_timeout_seconds + WATCH_READ_SLACK_SECONDS,
        }
        if resource_version:
            params["resource_version"] = resource_version

        if self._throttle is not None:
            self._throttle.acquire()
        watcher = self._watch_factory()
        last_version = resource_version
        try:
            for event in watcher.stream(
                self._api.list_cluster_custom_object,
                APPLICATION_GROUP,
                APPLICATION_VERSION,
                APPLICATION_PLURAL,
                **params,
            ):
                if should_stop():
                    break
                last_version = self._dispatch(event, handler) or last_version
        except ApiException as exc:
            raise store_error(exc, operation="watch") from exc
        except TransportError as exc:
            raise StoreUnavailableError(f"watch applications failed: {exc}") from exc
        finally:
            watcher.stop()
        return last_version

    def _dispatch(
        self,
        event: Mapping[str, Any],
        handler: Callable[[ApplicationEvent], None],
    ) -> str | None:
        try:
            payload = WatchEventPayload.model_validate(
                {
                    "type": event.get("type"),
                    "object": event.get("raw_object") or event.get("object") or {},
                }
            )
        except ValidationError as exc:
            raise StoreError(f"watch applications returned an invalid event: {exc}") from exc

        if payload.type == "ERROR":
            status = StatusPayload.model_validate(payload.object)
            message = f"watch applications failed: {status.message or status.reason}"
            if status.code == HTTPStatus.GONE:
                raise WatchExpiredError(message, status_code=status.code)
            raise StoreUnavailableError(message, status_code=status.code)

        metadata: dict[str, Any] = payload.object.get("metadata") or {}
        resource_version = metadata.get("resourceVersion")
        if payload.type == "BOOKMARK":
            return resource_version

        handler(
            ApplicationEvent(
                type=_WATCH_EVENT_TYPES[payload.type],
                key=NamespacedName(namespace=metadata["namespace"], name=metadata["name"]),
                resource_version=resource_version,
            )
        )
        return resource_version

    def _call(
        self,
        operation: str,
        request: Callable[..., Any],
        *,
        key: NamespacedName | None = None,
        missing_ok: bool = False,
    ) -> Any:
        """Run one API request under the throttle; ``None`` for a tolerated 404."""

        if self._throttle is not None:
            self._throttle.acquire()
        try:
            return request(_request_timeout=self._config.request_timeout_seconds)
        except ApiException as exc:
            if missing_ok and exc.status == HTTPStatus.NOT_FOUND:
                return None
            raise store_error(exc, operation=operation, key=key) from exc
        except TransportError as exc:
            msg = f"{operation} {_target(key)} failed: {exc}"
            raise StoreUnavailableError(msg, key=key) from exc

    def _parse(
        self,
        payload: Any,
        *,
        operation: str,
        key: NamespacedName,
    ) -> Application:
        try:
            return parse_application(payload)
        except ValidationError as exc:
            msg = f"{operation} {key} returned an invalid payload: {exc}"
            raise StoreError(msg, key=key) from exc
