"""Health checker: expands check categories into an ordered check list.

Most checks both validate and record what they discovered on the session
(clients, pods, versions). Later checks read those fields, which is why
categories have to be requested in dependency order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from meshcheck.healthcheck.models import (
    KUBERNETES_API_CATEGORY,
    LINKERD_API_CATEGORY,
    LINKERD_DATA_PLANE_CATEGORY,
    LINKERD_PRE_INSTALL_CATEGORY,
    LINKERD_VERSION_CATEGORY,
    Check,
    CheckObserver,
    Checks,
    HealthCheckError,
    HealthCheckOptions,
    RemoteSelfCheckAction,
    SimpleAction,
)
from meshcheck.healthcheck.permissions import PermissionChecker
from meshcheck.healthcheck.runner import CheckRunner
from meshcheck.healthcheck.session import SessionContext
from meshcheck.healthcheck.validators import (
    find_install_uuid,
    validate_control_plane_pods,
    validate_data_plane_pod_reporting,
    validate_data_plane_pods,
)
from meshcheck.k8s.api import KubernetesAPI
from meshcheck.public_api.client import PublicAPIClient, new_external_client, new_internal_client
from meshcheck.public_api.models import SelfCheckResponse
from meshcheck.version.version import (
    check_client_version,
    check_server_version,
    get_latest_version,
)

logger = logging.getLogger(__name__)

RBAC_GROUP = "rbac.authorization.k8s.io"


def standard_checks(pre_install: bool = False, data_plane: bool = False) -> list[Checks]:
    """Category list for a pre-install run or a post-install run."""
    if pre_install:
        return [Checks.KUBERNETES_API, Checks.LINKERD_PRE_INSTALL, Checks.LINKERD_VERSION]

    checks = [Checks.KUBERNETES_API, Checks.LINKERD_API]
    if data_plane:
        checks.append(Checks.LINKERD_DATA_PLANE)
    checks.append(Checks.LINKERD_VERSION)
    return checks


class HealthChecker:
    """Builds the check list for the requested categories and runs it."""

    def __init__(
        self,
        checks: Sequence[Checks],
        options: HealthCheckOptions,
        runner: CheckRunner | None = None,
    ) -> None:
        self.options = options
        self.session = SessionContext()
        self.permissions = PermissionChecker(self.session)
        self.runner = runner or CheckRunner()
        self._checks: list[Check] = []

        builders = {
            Checks.KUBERNETES_API: self._add_kubernetes_api_checks,
            Checks.LINKERD_PRE_INSTALL: self._add_pre_install_checks,
            Checks.LINKERD_DATA_PLANE: self._add_data_plane_checks,
            Checks.LINKERD_API: self._add_api_checks,
            Checks.LINKERD_VERSION: self._add_version_checks,
        }
        for category in checks:
            builders[category]()

        logger.debug("Built %d checks for %s", len(self._checks), [c.value for c in checks])

    @property
    def checks(self) -> tuple[Check, ...]:
        return tuple(self._checks)

    @property
    def public_api_client(self) -> PublicAPIClient | None:
        """Only set once the kubernetes-api and linkerd-api checks have run."""
        return self.session.api_client

    def add(self, category: str, description: str, fn: Callable[[], None]) -> None:
        """Append an ad-hoc check. Intended for tests."""
        self._checks.append(Check(category, description, SimpleAction(fn)))

    def run_checks(self, observer: CheckObserver) -> bool:
        """Run every check in order. The control plane API client is closed afterwards."""
        try:
            return self.runner.run(self._checks, observer)
        finally:
            if self.session.api_client is not None:
                self.session.api_client.close()

    # ── Builders ─────────────────────────────────────────────────────────

    def _simple(
        self,
        category: str,
        description: str,
        fn: Callable[[], None],
        fatal: bool,
        retry: bool = False,
    ) -> None:
        deadline = self.options.retry_deadline if retry else None
        self._checks.append(Check(category, description, SimpleAction(fn), fatal, deadline))

    def _add_kubernetes_api_checks(self) -> None:
        cat = KUBERNETES_API_CATEGORY
        self._simple(cat, "can initialize the client", self._init_kube_api, fatal=True)
        self._simple(cat, "can query the Kubernetes API", self._query_kube_api, fatal=True)

        if self.options.should_check_kube_version:
            self._simple(
                cat, "is running the minimum Kubernetes API version",
                lambda: self.session.kube_api.check_version(self.session.kube_version),
                fatal=False,
            )

    def _add_pre_install_checks(self) -> None:
        cat = LINKERD_PRE_INSTALL_CATEGORY
        ns = self.options.control_plane_namespace
        can_create = self.permissions.can_create

        self._simple(
            cat, "control plane namespace does not already exist",
            self._check_namespace_absent, fatal=False,
        )
        self._simple(
            cat, "can create Namespaces",
            lambda: can_create("", "", "v1", "namespaces"), fatal=True,
        )

        if self.options.single_namespace:
            rbac = (("Roles", "roles"), ("RoleBindings", "rolebindings"))
        else:
            rbac = (("ClusterRoles", "clusterroles"), ("ClusterRoleBindings", "clusterrolebindings"))
        for kind, resource in rbac:
            self._simple(
                cat, f"can create {kind}",
                lambda r=resource: can_create("", RBAC_GROUP, "v1", r), fatal=True,
            )

        namespaced = (
            ("ServiceAccounts", "", "v1", "serviceaccounts"),
            ("Services", "", "v1", "services"),
            ("Deployments", "apps", "v1", "deployments"),
            ("ConfigMaps", "", "v1", "configmaps"),
        )
        for kind, group, version, resource in namespaced:
            self._simple(
                cat, f"can create {kind}",
                lambda g=group, v=version, r=resource: can_create(ns, g, v, r),
                fatal=True,
            )

    def _add_api_checks(self) -> None:
        cat = LINKERD_API_CATEGORY
        self._simple(
            cat, "control plane namespace exists",
            lambda: self._check_namespace(self.options.control_plane_namespace),
            fatal=True,
        )
        self._simple(
            cat, "control plane pods are ready",
            self._check_control_plane_pods, fatal=True, retry=True,
        )
        self._simple(cat, "can initialize the client", self._init_api_client, fatal=True)
        self._checks.append(Check(
            cat, "can query the control plane API",
            RemoteSelfCheckAction(self._self_check), fatal=True,
        ))

    def _add_data_plane_checks(self) -> None:
        cat = LINKERD_DATA_PLANE_CATEGORY
        if self.options.data_plane_namespace:
            self._simple(
                cat, "data plane namespace exists",
                lambda: self._check_namespace(self.options.data_plane_namespace),
                fatal=True,
            )
        self._simple(
            cat, "data plane proxies are ready",
            self._check_data_plane_pods, fatal=True, retry=True,
        )
        self._simple(
            cat, "data plane proxy metrics are present in Prometheus",
            self._check_data_plane_reporting, fatal=False, retry=True,
        )

    def _add_version_checks(self) -> None:
        cat = LINKERD_VERSION_CATEGORY
        self._simple(cat, "can determine the latest version", self._resolve_latest_version, fatal=True)
        self._simple(
            cat, "cli is up-to-date",
            lambda: check_client_version(self.session.latest_version), fatal=False,
        )

        if self.options.should_check_control_plane_version:
            self._simple(
                cat, "control plane is up-to-date",
                lambda: check_server_version(self.session.api_client, self.session.latest_version),
                fatal=False,
            )

        if self.options.should_check_data_plane_version:
            self._simple(
                cat, "data plane is up-to-date",
                lambda: self.session.kube_api.check_proxy_version(
                    self.session.data_plane_pods, self.session.latest_version,
                ),
                fatal=False,
            )

    # ── Check actions ────────────────────────────────────────────────────

    def _init_kube_api(self) -> None:
        self.session.kube_api = KubernetesAPI.from_kubeconfig(
            self.options.kubeconfig, self.options.kube_context,
        )

    def _query_kube_api(self) -> None:
        kube_api = self.session.kube_api
        self.session.http_client = kube_api.new_client()
        self.session.kube_version = kube_api.get_version_info(self.session.http_client)

    def _check_namespace(self, namespace: str) -> None:
        if not self.session.kube_api.namespace_exists(self.session.http_client, namespace):
            raise HealthCheckError(f'The "{namespace}" namespace does not exist')

    def _check_namespace_absent(self) -> None:
        namespace = self.options.control_plane_namespace
        if self.session.kube_api.namespace_exists(self.session.http_client, namespace):
            raise HealthCheckError(f'The "{namespace}" namespace already exists')

    def _check_control_plane_pods(self) -> None:
        self.session.control_plane_pods = self.session.kube_api.get_pods_by_namespace(
            self.session.http_client, self.options.control_plane_namespace,
        )
        validate_control_plane_pods(self.session.control_plane_pods)

    def _init_api_client(self) -> None:
        ns = self.options.control_plane_namespace
        if self.options.api_addr:
            self.session.api_client = new_internal_client(ns, self.options.api_addr)
        else:
            self.session.api_client = new_external_client(ns, self.session.kube_api)

    def _self_check(self) -> SelfCheckResponse:
        return self.session.api_client.self_check(timeout=self.options.self_check_timeout)

    def _check_data_plane_pods(self) -> None:
        self.session.data_plane_pods = self.session.kube_api.get_pods_by_controller_namespace(
            self.session.http_client,
            self.options.control_plane_namespace,
            self.options.data_plane_namespace,
        )
        validate_data_plane_pods(self.session.data_plane_pods, self.options.data_plane_namespace)

    def _check_data_plane_reporting(self) -> None:
        resp = self.session.api_client.list_pods(self.options.data_plane_namespace)
        validate_data_plane_pod_reporting(self.session.data_plane_pods, resp.pods)

    def _resolve_latest_version(self) -> None:
        if self.options.version_override:
            self.session.latest_version = self.options.version_override
            return
        # the install UUID is only known to the web pod
        uuid = find_install_uuid(self.session.control_plane_pods)
        self.session.latest_version = get_latest_version(uuid, "cli")
