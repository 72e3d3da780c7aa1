"""Tests for the sequential check runner: ordering, fatal abort, retries, self-checks."""

from __future__ import annotations

from datetime import timedelta

import pytest

from meshcheck.healthcheck.models import (
    Check,
    CheckResult,
    HealthCheckError,
    RemoteSelfCheckAction,
    SimpleAction,
)
from meshcheck.healthcheck.runner import CheckRunner
from meshcheck.public_api.models import CheckStatus, SelfCheckResponse, SelfCheckResult


def ok() -> None:
    return None


def fail(msg: str = "boom"):
    def _fail() -> None:
        raise HealthCheckError(msg)
    return _fail


@pytest.fixture
def runner(clock) -> CheckRunner:
    return CheckRunner(retry_window=5.0, sleep=clock.sleep, now=clock.now)


@pytest.fixture
def results() -> list[CheckResult]:
    return []


# ── Simple checks ────────────────────────────────────────────────────────────


class TestSimpleChecks:
    def test_all_pass(self, runner, results) -> None:
        checks = [Check("cat", f"check {i}", SimpleAction(ok)) for i in range(3)]
        assert runner.run(checks, results.append) is True
        assert [r.description for r in results] == ["check 0", "check 1", "check 2"]
        assert all(r.err is None and not r.retry for r in results)

    def test_fatal_failure_stops_run(self, runner, results) -> None:
        called = []
        checks = [
            Check("cat", "first", SimpleAction(lambda: called.append("first"))),
            Check("cat", "fatal", SimpleAction(fail()), fatal=True),
            Check("cat", "never", SimpleAction(lambda: called.append("never"))),
        ]
        assert runner.run(checks, results.append) is False
        assert called == ["first"]
        assert [r.description for r in results] == ["first", "fatal"]
        assert str(results[-1].err) == "boom"

    def test_non_fatal_failures_continue(self, runner, results) -> None:
        called = []
        checks = [
            Check("cat", "a", SimpleAction(fail("a failed"))),
            Check("cat", "b", SimpleAction(lambda: called.append("b"))),
            Check("cat", "c", SimpleAction(fail("c failed"))),
        ]
        assert runner.run(checks, results.append) is False
        assert called == ["b"]
        assert [r.ok for r in results] == [False, True, False]

    def test_any_exception_is_a_failure(self, runner, results) -> None:
        def explode() -> None:
            raise RuntimeError("connection refused")

        assert runner.run([Check("cat", "x", SimpleAction(explode))], results.append) is False
        assert isinstance(results[0].err, RuntimeError)

    def test_empty_list_succeeds(self, runner, results) -> None:
        assert runner.run([], results.append) is True
        assert results == []


# ── Retry loop ───────────────────────────────────────────────────────────────


class TestRetry:
    def test_no_deadline_means_no_retry(self, runner, results, clock) -> None:
        runner.run([Check("cat", "x", SimpleAction(fail()))], results.append)
        assert len(results) == 1
        assert results[0].retry is False
        assert clock.sleeps == []

    def test_retries_until_deadline(self, runner, results, clock) -> None:
        deadline = clock.now() + timedelta(seconds=12)
        check = Check("cat", "x", SimpleAction(fail()), fatal=True, retry_deadline=deadline)

        assert runner.run([check], results.append) is False

        retries = [r for r in results if r.retry]
        assert len(retries) >= 2
        assert all(r.err is not None for r in retries)
        assert results[-1].retry is False
        assert results[-1].err is not None
        assert all(s == 5.0 for s in clock.sleeps)
        assert clock.now() >= deadline

    def test_recovers_before_deadline(self, runner, results, clock) -> None:
        attempts = []

        def flaky() -> None:
            attempts.append(1)
            if len(attempts) < 3:
                raise HealthCheckError("pods not ready")

        deadline = clock.now() + timedelta(seconds=60)
        check = Check("cat", "x", SimpleAction(flaky), retry_deadline=deadline)

        assert runner.run([check], results.append) is True
        assert [r.retry for r in results] == [True, True, False]
        assert results[-1].err is None
        assert len(clock.sleeps) == 2

    def test_past_deadline_does_not_retry(self, runner, results, clock) -> None:
        deadline = clock.now() - timedelta(seconds=1)
        runner.run([Check("cat", "x", SimpleAction(fail()), retry_deadline=deadline)], results.append)
        assert [r.retry for r in results] == [False]


# ── Remote self-checks ───────────────────────────────────────────────────────


def _response(*statuses: CheckStatus) -> SelfCheckResponse:
    return SelfCheckResponse(results=[
        SelfCheckResult(
            subsystemName=f"sub{i}",
            checkDescription=f"desc {i}",
            status=status,
            friendlyMessageToUser=f"sub{i} is broken" if status != CheckStatus.OK else "",
        )
        for i, status in enumerate(statuses, start=1)
    ])


class TestRemoteSelfCheck:
    def test_all_sub_results_reported(self, runner, results) -> None:
        check = Check("linkerd-api", "can query", RemoteSelfCheckAction(
            lambda: _response(CheckStatus.OK, CheckStatus.OK)))

        assert runner.run([check], results.append) is True
        assert [r.category for r in results] == [
            "linkerd-api", "linkerd-api[sub1]", "linkerd-api[sub2]",
        ]
        assert [r.description for r in results] == ["can query", "desc 1", "desc 2"]

    def test_stops_at_first_failing_sub_result(self, runner, results) -> None:
        after = []
        checks = [
            Check("linkerd-api", "can query", RemoteSelfCheckAction(
                lambda: _response(CheckStatus.OK, CheckStatus.FAIL, CheckStatus.OK)), fatal=True),
            Check("cat", "after", SimpleAction(lambda: after.append(1))),
        ]

        assert runner.run(checks, results.append) is False
        assert len(results) == 3
        assert results[0].err is None
        assert results[1].err is None
        assert str(results[2].err) == "sub2 is broken"
        assert after == []

    def test_non_fatal_sub_failure_continues(self, runner, results) -> None:
        checks = [
            Check("api", "query", RemoteSelfCheckAction(lambda: _response(CheckStatus.ERROR))),
            Check("cat", "after", SimpleAction(ok)),
        ]
        assert runner.run(checks, results.append) is False
        assert [r.description for r in results] == ["query", "desc 1", "after"]

    def test_call_failure_not_retried(self, runner, results, clock) -> None:
        def unreachable() -> SelfCheckResponse:
            raise ConnectionError("timed out")

        check = Check("api", "query", RemoteSelfCheckAction(unreachable),
                      retry_deadline=clock.now() + timedelta(seconds=60))

        assert runner.run([check], results.append) is False
        assert len(results) == 1
        assert isinstance(results[0].err, ConnectionError)
        assert clock.sleeps == []

    def test_empty_response_passes(self, runner, results) -> None:
        check = Check("api", "query", RemoteSelfCheckAction(lambda: SelfCheckResponse()))
        assert runner.run([check], results.append) is True
        assert len(results) == 1
