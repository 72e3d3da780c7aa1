"""State built up while one set of checks runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from meshcheck.k8s.api import KubernetesAPI
    from meshcheck.public_api.client import PublicAPIClient


@dataclass
class SessionContext:
    """Fields are written by checks as they run and read by later checks.

    Writers:
      kube_api, http_client, kube_version: kubernetes-api checks
      control_plane_pods, api_client: linkerd-api checks
      data_plane_pods: linkerd-data-plane checks
      latest_version: linkerd-version checks
      clientset: first permission check
    """

    kube_api: KubernetesAPI | None = None
    http_client: Any = None  # kubernetes.client.ApiClient
    kube_version: Any = None  # kubernetes.client.VersionInfo
    control_plane_pods: list[Any] = field(default_factory=list)
    data_plane_pods: list[Any] = field(default_factory=list)
    api_client: PublicAPIClient | None = None
    latest_version: str = ""
    clientset: Any = None  # kubernetes.client.ApiClient for access reviews
