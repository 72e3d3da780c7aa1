"""RBAC capability probe using self-subject access reviews."""

from __future__ import annotations

import logging

from kubernetes import client as k8s_client

from meshcheck.healthcheck.models import HealthCheckError
from meshcheck.healthcheck.session import SessionContext

logger = logging.getLogger(__name__)


class PermissionChecker:
    """Asks the API server whether the current user may create a resource."""

    def __init__(self, session: SessionContext) -> None:
        self.session = session

    def _clientset(self) -> k8s_client.ApiClient:
        if self.session.clientset is None:
            self.session.clientset = k8s_client.ApiClient(self.session.kube_api.config)
        return self.session.clientset

    def can_create(self, namespace: str, group: str, version: str, resource: str) -> None:
        auth = k8s_client.AuthorizationV1Api(self._clientset())

        review = k8s_client.V1SelfSubjectAccessReview(
            spec=k8s_client.V1SelfSubjectAccessReviewSpec(
                resource_attributes=k8s_client.V1ResourceAttributes(
                    namespace=namespace,
                    verb="create",
                    group=group,
                    version=version,
                    resource=resource,
                ),
            ),
        )

        response = auth.create_self_subject_access_review(review)
        logger.debug("Access review for create %s: %s", resource, response.status)

        if not response.status.allowed:
            if response.status.reason:
                raise HealthCheckError(
                    f"Missing permissions to create {resource}: {response.status.reason}"
                )
            raise HealthCheckError(f"Missing permissions to create {resource}")
