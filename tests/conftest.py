"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from kubernetes import client as k8s_client


def make_pod(
    name: str,
    namespace: str = "linkerd",
    phase: str = "Running",
    containers: dict[str, bool] | None = None,
    args: dict[str, list[str]] | None = None,
    images: dict[str, str] | None = None,
) -> k8s_client.V1Pod:
    """Build a V1Pod. ``containers`` maps container name -> ready."""
    containers = {name.split("-")[0]: True} if containers is None else containers
    args = args or {}
    images = images or {}

    statuses = [
        k8s_client.V1ContainerStatus(
            name=c, ready=ready, image=images.get(c, f"img/{c}:latest"),
            image_id="", restart_count=0,
        )
        for c, ready in containers.items()
    ]
    specs = [
        k8s_client.V1Container(name=c, image=images.get(c, f"img/{c}:latest"), args=args.get(c))
        for c in containers
    ]
    return k8s_client.V1Pod(
        metadata=k8s_client.V1ObjectMeta(name=name, namespace=namespace),
        spec=k8s_client.V1PodSpec(containers=specs),
        status=k8s_client.V1PodStatus(phase=phase, container_statuses=statuses),
    )


class FakeClock:
    """Stands in for both ``now`` and ``sleep`` so retries run instantly."""

    def __init__(self) -> None:
        self.current = datetime(2025, 1, 1, tzinfo=timezone.utc)
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self.current

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def healthy_control_plane() -> list[k8s_client.V1Pod]:
    return [
        make_pod("controller-5d8f7-abcde", containers={"public-api": True, "destination": True}),
        make_pod("grafana-6b4c9-fghij"),
        make_pod("prometheus-7c5d1-klmno"),
        make_pod("web-8d6e2-pqrst", args={"web": ["-addr=:8084", "-uuid=1234-abcd"]}),
    ]
