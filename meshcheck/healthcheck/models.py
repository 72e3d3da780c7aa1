"""Models for checks, their results and the options of a run."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Union

from meshcheck.public_api.models import SelfCheckResponse


class HealthCheckError(Exception):
    """Raised by a check whose observed state is not healthy."""


class Checks(Enum):
    """Check categories, expanded by ``HealthChecker`` in the order requested.

    ``KUBERNETES_API`` populates the clients every other category uses, so it
    must be listed first. ``LINKERD_VERSION`` reads the control plane pods and
    API client, so ``LINKERD_API`` must precede it unless the control plane and
    data plane version options are off.
    """

    KUBERNETES_API = "kubernetes-api"
    LINKERD_PRE_INSTALL = "kubernetes-setup"
    LINKERD_DATA_PLANE = "linkerd-data-plane"
    LINKERD_API = "linkerd-api"
    LINKERD_VERSION = "linkerd-version"

    @property
    def category(self) -> str:
        return self.value


KUBERNETES_API_CATEGORY = Checks.KUBERNETES_API.category
LINKERD_PRE_INSTALL_CATEGORY = Checks.LINKERD_PRE_INSTALL.category
LINKERD_DATA_PLANE_CATEGORY = Checks.LINKERD_DATA_PLANE.category
LINKERD_API_CATEGORY = Checks.LINKERD_API.category
LINKERD_VERSION_CATEGORY = Checks.LINKERD_VERSION.category


# ── Check actions ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SimpleAction:
    """Validates (and may populate the session); raises on failure."""

    fn: Callable[[], None]


@dataclass(frozen=True)
class RemoteSelfCheckAction:
    """Calls the control plane once; each sub-result is reported separately."""

    fn: Callable[[], SelfCheckResponse]


Action = Union[SimpleAction, RemoteSelfCheckAction]


@dataclass(frozen=True)
class Check:
    category: str
    description: str
    action: Action
    fatal: bool = False
    retry_deadline: datetime | None = None  # None = never retry


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one check attempt, or of one self-check sub-result."""

    category: str
    description: str
    retry: bool = False
    err: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.err is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "description": self.description,
            "retry": self.retry,
            "ok": self.ok,
            "error": str(self.err) if self.err is not None else None,
        }


CheckObserver = Callable[[CheckResult], None]


@dataclass
class HealthCheckOptions:
    control_plane_namespace: str = "linkerd"
    data_plane_namespace: str = ""  # empty = all namespaces
    kubeconfig: str = ""
    kube_context: str = ""
    api_addr: str = ""
    version_override: str = ""
    retry_deadline: datetime | None = None
    should_check_kube_version: bool = False
    should_check_control_plane_version: bool = False
    should_check_data_plane_version: bool = False
    single_namespace: bool = False
    self_check_timeout: float = 5.0
