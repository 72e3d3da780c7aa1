"""httpx-based client for the control plane public API.

Requests are JSON-encoded POSTs to ``/api/v1/<Method>``. The client either
talks to the controller directly (``new_internal_client``) or tunnels through
the Kubernetes API server's service proxy (``new_external_client``).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from meshcheck.public_api.models import (
    ListPodsRequest,
    ListPodsResponse,
    SelfCheckResponse,
    VersionInfo,
)

if TYPE_CHECKING:
    from meshcheck.k8s.api import KubernetesAPI

logger = logging.getLogger(__name__)

API_ROOT = "/api/v1/"
API_DEPLOYMENT = "linkerd-controller-api"


class PublicAPIError(Exception):
    """Raised when the control plane API returns an error."""

    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Control plane API error {status_code}: {detail}")


class PublicAPIClient:
    """Synchronous client for the control plane public API."""

    def __init__(self, base_url: str, http_client: httpx.Client, timeout: float = 30.0) -> None:
        self._base_url = base_url.rstrip("/") + API_ROOT
        self._http = http_client
        self._timeout = timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> PublicAPIClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _post(
        self,
        method: str,
        json_data: dict[str, Any],
        timeout: float | None = None,
    ) -> httpx.Response:
        """POST a request to an API method and return the raw response."""
        resp = self._http.post(
            self._base_url + method,
            json=json_data,
            timeout=self._timeout if timeout is None else timeout,
        )
        if resp.status_code >= 400:
            detail = resp.text
            try:
                detail = resp.json().get("error", resp.text)
            except Exception:
                pass
            logger.debug("%s returned %d: %s", method, resp.status_code, detail)
            raise PublicAPIError(resp.status_code, str(detail))
        return resp

    # ── High-level methods ───────────────────────────────────────────────

    def self_check(self, timeout: float | None = None) -> SelfCheckResponse:
        """POST /SelfCheck"""
        resp = self._post("SelfCheck", {}, timeout=timeout)
        return SelfCheckResponse(**resp.json())

    def list_pods(self, namespace: str = "") -> ListPodsResponse:
        """POST /ListPods. Each pod is flagged with whether Prometheus knows it."""
        req = ListPodsRequest(namespace=namespace)
        resp = self._post("ListPods", req.model_dump())
        return ListPodsResponse(**resp.json())

    def version(self) -> VersionInfo:
        """POST /Version"""
        resp = self._post("Version", {})
        return VersionInfo(**resp.json())


def new_internal_client(namespace: str, addr: str) -> PublicAPIClient:
    """Client for use inside the cluster, talking to the controller directly."""
    if "://" not in addr:
        addr = f"http://{addr}"
    logger.debug("Using internal control plane API at %s (namespace %s)", addr, namespace)
    return PublicAPIClient(addr, httpx.Client())


def new_external_client(namespace: str, kube_api: KubernetesAPI) -> PublicAPIClient:
    """Client for use outside the cluster, proxied through the Kubernetes API."""
    http_client = kube_api.new_http_client()
    base_url = kube_api.proxy_url(
        namespace, f"services/{API_DEPLOYMENT}:http/proxy",
    )
    return PublicAPIClient(base_url, http_client)
