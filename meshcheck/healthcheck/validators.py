"""Pure readiness / consistency checks over pod snapshots.

No I/O happens here: callers fetch pods and hand them in. Each validator
returns ``None`` when the state is healthy and raises ``HealthCheckError``
describing the first problem found otherwise.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any

from meshcheck.healthcheck.models import HealthCheckError
from meshcheck.k8s.api import PROXY_CONTAINER_NAME

POD_RUNNING = "Running"

# single-namespace installs prefix control plane pods with this
CONTROL_PLANE_POD_PREFIX = "linkerd-"
REQUIRED_CONTROL_PLANE_COMPONENTS = ("controller", "grafana", "prometheus", "web")
CA_COMPONENT = "ca"

WEB_COMPONENT = "web"
UUID_ARG_PREFIX = "-uuid="


def _component_name(pod_name: str) -> str:
    if pod_name.startswith(CONTROL_PLANE_POD_PREFIX):
        pod_name = pod_name[len(CONTROL_PLANE_POD_PREFIX):]
    return pod_name.split("-", 1)[0]


def validate_control_plane_pods(pods: list[Any]) -> None:
    statuses: dict[str, list[Any]] = defaultdict(list)

    for pod in pods:
        if pod.status.phase != POD_RUNNING:
            continue
        name = _component_name(pod.metadata.name)
        statuses[name].extend(pod.status.container_statuses or [])

    names = list(REQUIRED_CONTROL_PLANE_COMPONENTS)
    if CA_COMPONENT in statuses:
        names.append(CA_COMPONENT)

    for name in names:
        if name not in statuses:
            raise HealthCheckError(f'No running pods for "{name}"')
        for container in statuses[name]:
            if not container.ready:
                raise HealthCheckError(
                    f'The "{name}" pod\'s "{container.name}" container is not ready'
                )


def validate_data_plane_pods(pods: list[Any], target_namespace: str = "") -> None:
    if not pods:
        msg = f'No "{PROXY_CONTAINER_NAME}" containers found'
        if target_namespace:
            msg += f' in the "{target_namespace}" namespace'
        raise HealthCheckError(msg)

    for pod in pods:
        name, namespace = pod.metadata.name, pod.metadata.namespace
        if pod.status.phase != POD_RUNNING:
            raise HealthCheckError(
                f'The "{name}" pod in the "{namespace}" namespace is not running'
            )

        proxy_ready = any(
            c.name == PROXY_CONTAINER_NAME and c.ready
            for c in pod.status.container_statuses or []
        )
        if not proxy_ready:
            raise HealthCheckError(
                f'The "{PROXY_CONTAINER_NAME}" container in the "{name}" pod '
                f'in the "{namespace}" namespace is not ready'
            )


def validate_data_plane_pod_reporting(k8s_pods: list[Any], metrics_pods: list[Any]) -> None:
    """Compare the pods Kubernetes knows about with those Prometheus scraped.

    Kubernetes pods are keyed ``namespace/name``; metrics pods are keyed by
    their reported ``name`` as-is, and only count when flagged ``added``.
    """
    k8s_keys = {f"{p.metadata.namespace}/{p.metadata.name}" for p in k8s_pods}
    metrics_keys = {p.name for p in metrics_pods if p.added}

    only_in_k8s = sorted(k8s_keys - metrics_keys)
    only_in_metrics = sorted(metrics_keys - k8s_keys)

    msg = ""
    if only_in_k8s:
        msg = f"Data plane metrics not found for {', '.join(only_in_k8s)}. "
    if only_in_metrics:
        msg += (
            f"Found data plane metrics for {', '.join(only_in_metrics)}, "
            "but not found in Kubernetes."
        )

    if msg:
        raise HealthCheckError(msg.strip())


def find_install_uuid(pods: list[Any]) -> str:
    """Installation UUID from the web pod's ``-uuid=`` flag, or "unknown"."""
    uuid = "unknown"
    for pod in pods:
        if pod.metadata.name.split("-", 1)[0] != WEB_COMPONENT:
            continue
        for container in pod.spec.containers or []:
            if container.name != WEB_COMPONENT:
                continue
            for arg in container.args or []:
                if arg.startswith(UUID_ARG_PREFIX):
                    uuid = arg[len(UUID_ARG_PREFIX):]
    return uuid
