"""FastAPI server exposing health check runs over HTTP.

Endpoints:
  GET /health     liveness
  GET /api/check  run the checks once and return the final result of each
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, FastAPI

from meshcheck.config import settings
from meshcheck.healthcheck import CheckResult, HealthChecker, HealthCheckOptions, standard_checks
from meshcheck.healthcheck.runner import CheckRunner, utcnow
from meshcheck.version import VERSION

logger = logging.getLogger(__name__)

check_router = APIRouter(prefix="/api")


@check_router.get("/check")
def run_check(pre: bool = False, proxy: bool = False, namespace: str = "", wait: int = 0) -> dict[str, Any]:
    """Run the standard checks. ``wait`` bounds retries of pod readiness checks."""
    options = HealthCheckOptions(
        control_plane_namespace=settings.control_plane_namespace,
        data_plane_namespace=namespace,
        kubeconfig=settings.kubeconfig,
        kube_context=settings.kube_context,
        api_addr=settings.api_addr,
        retry_deadline=utcnow() + timedelta(seconds=wait) if wait > 0 else None,
        should_check_kube_version=True,
        should_check_control_plane_version=not pre,
        should_check_data_plane_version=proxy and not pre,
        self_check_timeout=settings.self_check_timeout_seconds,
    )
    checker = HealthChecker(
        standard_checks(pre_install=pre, data_plane=proxy),
        options,
        runner=CheckRunner(retry_window=settings.retry_window_seconds),
    )

    results: list[CheckResult] = []
    success = checker.run_checks(results.append)
    logger.info("Check run finished: success=%s, %d results", success, len(results))

    return {
        "success": success,
        "results": [r.to_dict() for r in results if not r.retry],
    }


def create_app() -> FastAPI:
    app = FastAPI(title="meshcheck", version=VERSION)

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"ok": True, "version": VERSION}

    app.include_router(check_router)
    return app


app = create_app()
