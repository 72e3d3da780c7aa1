"""Kubernetes client configuration and read-only cluster queries."""

from .api import CONTROLLER_NS_LABEL, PROXY_CONTAINER_NAME, KubernetesAPI, KubernetesAPIError
