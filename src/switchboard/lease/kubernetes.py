"""Lease store backed by an annotation on a Kubernetes Service.

The lease lives in ``metadata.annotations[<key>]`` of one Service. Writes are
JSON merge patches without a ``resourceVersion`` precondition, so the API
server applies them unconditionally and the last write wins.

Example:
    store = KubernetesAnnotationStore.from_settings(settings)
    try:
        value = await store.get()
    finally:
        await store.close()
"""

from __future__ import annotations

import logging
import ssl
from typing import TYPE_CHECKING, Any

import httpx
import orjson

from switchboard.lease.store import LeaseStoreError

if TYPE_CHECKING:
    from switchboard.config import Settings

logger = logging.getLogger(__name__)

MERGE_PATCH_CONTENT_TYPE = "application/merge-patch+json"


def make_http_client_with_ca(
    base_url: str,
    ca_path: str,
    token: str | None = None,
    timeout: float = 60.0,
) -> httpx.AsyncClient:
    """Create an HTTP client that only trusts the CA bundle at ``ca_path``.

    Args:
        base_url: API server base URL
        ca_path: Path to a PEM encoded CA certificate bundle
        token: Optional bearer token sent with every request
        timeout: Request timeout in seconds

    Raises:
        LeaseStoreError: If the CA bundle cannot be loaded
    """
    try:
        context = ssl.create_default_context(cafile=ca_path)
    except (OSError, ssl.SSLError) as e:
        raise LeaseStoreError("connect", f"could not load CA certificate {ca_path}: {e}") from e

    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    return httpx.AsyncClient(
        base_url=base_url,
        headers=headers,
        verify=context,
        timeout=timeout,
    )


class KubernetesAnnotationStore:
    """Lease store over one annotation of one Kubernetes Service."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        namespace: str,
        service: str,
        annotation_key: str,
    ) -> None:
        self.client = client
        self.namespace = namespace
        self.service = service
        self.annotation_key = annotation_key
        self._path = f"/api/v1/namespaces/{namespace}/services/{service}"

    @classmethod
    def from_settings(cls, settings: Settings) -> KubernetesAnnotationStore:
        """Build a store using the pod's service account credentials.

        Raises:
            LeaseStoreError: If the token, namespace or CA bundle is unreadable
        """
        try:
            with open(settings.kube_token_path, encoding="utf-8") as f:
                token = f.read().strip()
            namespace = settings.resolve_namespace()
        except OSError as e:
            raise LeaseStoreError("connect", f"could not read service account: {e}") from e

        client = make_http_client_with_ca(
            settings.kube_api_url,
            settings.kube_ca_path,
            token=token,
            timeout=settings.store_timeout,
        )
        return cls(client, namespace, settings.kube_service, settings.annotation_key)

    @property
    def location(self) -> str:
        """Human readable coordinates of the lease."""
        return f"{self.namespace}/{self.service}:{self.annotation_key}"

    async def get(self) -> str | None:
        logger.debug(f"Retrieving lease {self.location}")
        response = await self._request("get", "GET")
        try:
            body = response.json()
        except ValueError as e:
            raise LeaseStoreError("get", f"invalid response body: {e}") from e

        if not isinstance(body, dict):
            raise LeaseStoreError("get", "unexpected response shape")
        metadata = body.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise LeaseStoreError("get", "unexpected response shape")
        annotations = metadata.get("annotations") or {}
        if not isinstance(annotations, dict):
            raise LeaseStoreError("get", "unexpected response shape")

        value = annotations.get(self.annotation_key)
        if value is not None and not isinstance(value, str):
            raise LeaseStoreError("get", "unexpected response shape")
        return value or None

    async def set(self, value: str) -> None:
        logger.debug(f"Writing lease {self.location} = {value}")
        await self._patch("set", {self.annotation_key: value})

    async def clear(self) -> None:
        logger.debug(f"Clearing lease {self.location}")
        await self._patch("clear", {self.annotation_key: None})

    async def close(self) -> None:
        await self.client.aclose()

    async def _patch(self, operation: str, annotations: dict[str, Any]) -> None:
        body = orjson.dumps({"metadata": {"annotations": annotations}})
        await self._request(
            operation,
            "PATCH",
            content=body,
            headers={"Content-Type": MERGE_PATCH_CONTENT_TYPE},
        )

    async def _request(self, operation: str, method: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.request(method, self._path, **kwargs)
        except httpx.HTTPError as e:
            raise LeaseStoreError(operation, f"{type(e).__name__}: {e}") from e

        if response.is_error:
            raise LeaseStoreError(
                operation,
                f"{method} {self._path} returned {response.status_code}: "
                f"{response.text[:200]}",
            )
        return response
