"""Kubernetes API access for the health checks.

Wraps the official ``kubernetes`` client. Every query takes the ``ApiClient``
built by ``new_client`` so callers control when a connection is established.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx
from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException

logger = logging.getLogger(__name__)

PROXY_CONTAINER_NAME = "linkerd-proxy"
CONTROLLER_NS_LABEL = "linkerd.io/control-plane-ns"
MIN_API_VERSION = (1, 9, 0)

_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)")


class KubernetesAPIError(Exception):
    """Raised when the cluster state does not meet a requirement."""


def _fmt_version(parts: tuple[int, ...]) -> str:
    return ".".join(str(p) for p in parts)


def _image_tag(image: str) -> str:
    """Tag portion of an image reference ("" if untagged)."""
    last = image.rsplit("/", 1)[-1]
    if ":" not in last:
        return ""
    return last.rsplit(":", 1)[1]


class KubernetesAPI:
    """Holds a resolved client configuration and issues read-only queries."""

    def __init__(self, config: k8s_client.Configuration) -> None:
        self.config = config

    @classmethod
    def from_kubeconfig(cls, kubeconfig: str = "", context: str = "") -> KubernetesAPI:
        """Load credentials from a kubeconfig file (default location if empty)."""
        cfg = k8s_client.Configuration()
        k8s_config.load_kube_config(
            config_file=kubeconfig or None,
            context=context or None,
            client_configuration=cfg,
        )
        logger.debug("Loaded kubeconfig for %s", cfg.host)
        return cls(cfg)

    def new_client(self) -> k8s_client.ApiClient:
        return k8s_client.ApiClient(self.config)

    def new_http_client(self) -> httpx.Client:
        """Plain httpx client carrying the kubeconfig's TLS material and token."""
        cfg = self.config
        verify: Any = cfg.ssl_ca_cert if cfg.ssl_ca_cert else cfg.verify_ssl
        cert = (cfg.cert_file, cfg.key_file) if cfg.cert_file and cfg.key_file else None
        headers: dict[str, str] = {}
        token = cfg.get_api_key_with_prefix("authorization")
        if token:
            headers["Authorization"] = token
        return httpx.Client(verify=verify, cert=cert, headers=headers)

    def proxy_url(self, namespace: str, path: str) -> str:
        """URL of a namespaced resource path on the API server."""
        return f"{self.config.host.rstrip('/')}/api/v1/namespaces/{namespace}/{path}"

    # ── Queries ──────────────────────────────────────────────────────────

    def get_version_info(self, client: k8s_client.ApiClient) -> k8s_client.VersionInfo:
        return k8s_client.VersionApi(client).get_code()

    def check_version(self, version_info: k8s_client.VersionInfo) -> None:
        """Raise if the cluster is older than ``MIN_API_VERSION``."""
        match = _VERSION_RE.match(version_info.git_version or "")
        if not match:
            raise KubernetesAPIError(
                f"Could not parse Kubernetes version {version_info.git_version!r}"
            )
        actual = tuple(int(g) for g in match.groups())
        if actual < MIN_API_VERSION:
            raise KubernetesAPIError(
                f"Kubernetes is on version {_fmt_version(actual)}, but version "
                f"{_fmt_version(MIN_API_VERSION)} or more recent is required"
            )

    def namespace_exists(self, client: k8s_client.ApiClient, namespace: str) -> bool:
        try:
            k8s_client.CoreV1Api(client).read_namespace(namespace)
        except ApiException as e:
            if e.status == 404:
                return False
            raise
        return True

    def get_pods_by_namespace(
        self, client: k8s_client.ApiClient, namespace: str,
    ) -> list[k8s_client.V1Pod]:
        return k8s_client.CoreV1Api(client).list_namespaced_pod(namespace).items

    def get_pods_by_controller_namespace(
        self,
        client: k8s_client.ApiClient,
        controller_namespace: str,
        namespace: str = "",
    ) -> list[k8s_client.V1Pod]:
        """Pods injected by the control plane in ``controller_namespace``.

        An empty ``namespace`` searches all namespaces.
        """
        core = k8s_client.CoreV1Api(client)
        selector = f"{CONTROLLER_NS_LABEL}={controller_namespace}"
        if namespace:
            return core.list_namespaced_pod(namespace, label_selector=selector).items
        return core.list_pod_for_all_namespaces(label_selector=selector).items

    def check_proxy_version(self, pods: list[k8s_client.V1Pod], version: str) -> None:
        """Raise on the first pod whose proxy image is not tagged ``version``."""
        for pod in pods:
            for container in pod.spec.containers or []:
                if container.name != PROXY_CONTAINER_NAME:
                    continue
                tag = _image_tag(container.image or "")
                if tag != version:
                    raise KubernetesAPIError(
                        f"{pod.metadata.name} running {tag or 'unknown'} but cli running {version}"
                    )
