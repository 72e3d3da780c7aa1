"""Tests for the FastAPI routes."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from meshcheck.api.server import create_app
from meshcheck.healthcheck import CheckResult, Checks, HealthCheckError


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


def _fake_run(results: list[CheckResult], success: bool):
    def run_checks(self, observer) -> bool:
        for r in results:
            observer(r)
        return success
    return run_checks


class TestCheckRoutes:
    def test_health(self, client) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["ok"] is True

    def test_check_success(self, client) -> None:
        results = [
            CheckResult("kubernetes-api", "can initialize the client"),
            CheckResult("linkerd-api", "control plane pods are ready", retry=True,
                        err=HealthCheckError("not yet")),
            CheckResult("linkerd-api", "control plane pods are ready"),
        ]
        with patch("meshcheck.api.server.HealthChecker.run_checks", _fake_run(results, True)):
            resp = client.get("/api/check")

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        # retry attempts are not part of the final report
        assert [r["description"] for r in data["results"]] == [
            "can initialize the client", "control plane pods are ready",
        ]

    def test_check_failure_reports_error(self, client) -> None:
        results = [CheckResult("kubernetes-api", "can initialize the client",
                               err=HealthCheckError("no kubeconfig"))]
        with patch("meshcheck.api.server.HealthChecker.run_checks", _fake_run(results, False)):
            data = client.get("/api/check").json()

        assert data["success"] is False
        assert data["results"][0]["ok"] is False
        assert data["results"][0]["error"] == "no kubeconfig"

    def test_check_categories_follow_query(self, client) -> None:
        with patch("meshcheck.api.server.HealthChecker") as checker_cls:
            checker_cls.return_value.run_checks.return_value = True
            client.get("/api/check", params={"pre": "true"})

        categories, options = checker_cls.call_args.args
        assert categories == [Checks.KUBERNETES_API, Checks.LINKERD_PRE_INSTALL,
                              Checks.LINKERD_VERSION]
        assert options.should_check_control_plane_version is False
        assert options.retry_deadline is None

    def test_pre_with_proxy_skips_data_plane_version(self, client) -> None:
        with patch("meshcheck.api.server.HealthChecker") as checker_cls:
            checker_cls.return_value.run_checks.return_value = True
            client.get("/api/check", params={"pre": "true", "proxy": "true"})

        categories, options = checker_cls.call_args.args
        assert Checks.LINKERD_DATA_PLANE not in categories
        assert options.should_check_data_plane_version is False

    def test_proxy_checks_data_plane_version(self, client) -> None:
        with patch("meshcheck.api.server.HealthChecker") as checker_cls:
            checker_cls.return_value.run_checks.return_value = True
            client.get("/api/check", params={"proxy": "true"})

        categories, options = checker_cls.call_args.args
        assert Checks.LINKERD_DATA_PLANE in categories
        assert options.should_check_data_plane_version is True
