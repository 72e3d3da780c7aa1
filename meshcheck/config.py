from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Kubernetes
    kubeconfig: str = ""  # empty = $KUBECONFIG or ~/.kube/config
    kube_context: str = ""
    control_plane_namespace: str = "linkerd"

    # Control plane API (bypasses the Kubernetes API proxy when set)
    api_addr: str = ""

    # Retry behaviour
    check_wait_seconds: int = 300  # how long pod readiness checks keep retrying
    retry_window_seconds: float = 5.0  # sleep between attempts
    self_check_timeout_seconds: float = 5.0

    # Version check endpoint
    version_check_url: str = "https://versioncheck.linkerd.io/version.json"

    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8085

    # Logging
    log_level: str = "INFO"


settings = Settings()
