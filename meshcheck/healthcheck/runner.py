"""Sequential check runner. Retries until a deadline and stops on fatal failures.

Checks run one at a time in list order on the calling thread. Each outcome is
handed to the observer before the next check starts.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from meshcheck.healthcheck.models import (
    Check,
    CheckObserver,
    CheckResult,
    HealthCheckError,
    RemoteSelfCheckAction,
    SimpleAction,
)
from meshcheck.public_api.models import CheckStatus

logger = logging.getLogger(__name__)

RETRY_WINDOW = 5.0  # seconds between attempts


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CheckRunner:
    """Executes checks and reports every attempt to an observer."""

    def __init__(
        self,
        retry_window: float = RETRY_WINDOW,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self.retry_window = retry_window
        self._sleep = sleep
        self._now = now

    def run(self, checks: Iterable[Check], observer: CheckObserver) -> bool:
        """Run ``checks`` in order. Returns True only if all of them passed.

        A failing fatal check ends the run; later checks are never invoked.
        """
        success = True

        for check in checks:
            if isinstance(check.action, SimpleAction):
                passed = self._run_simple(check, check.action, observer)
            elif isinstance(check.action, RemoteSelfCheckAction):
                passed = self._run_self_check(check, check.action, observer)
            else:
                raise TypeError(f"Unknown check action: {check.action!r}")

            if not passed:
                success = False
                if check.fatal:
                    logger.info("Fatal check failed, skipping the rest: %s %s",
                                check.category, check.description)
                    break

        return success

    def _run_simple(self, check: Check, action: SimpleAction, observer: CheckObserver) -> bool:
        while True:
            err: Exception | None = None
            try:
                action.fn()
            except Exception as e:
                err = e

            if err is not None and self._before_deadline(check):
                logger.debug("Check %s/%s failed, retrying in %ss: %s",
                             check.category, check.description, self.retry_window, err)
                observer(CheckResult(check.category, check.description, retry=True, err=err))
                self._sleep(self.retry_window)
                continue

            observer(CheckResult(check.category, check.description, err=err))
            return err is None

    def _run_self_check(
        self, check: Check, action: RemoteSelfCheckAction, observer: CheckObserver,
    ) -> bool:
        try:
            response = action.fn()
        except Exception as e:
            observer(CheckResult(check.category, check.description, err=e))
            return False

        observer(CheckResult(check.category, check.description))

        for result in response.results:
            err = None
            if result.status != CheckStatus.OK:
                err = HealthCheckError(result.friendlyMessageToUser)
            observer(CheckResult(
                f"{check.category}[{result.subsystemName}]",
                result.checkDescription,
                err=err,
            ))
            if err is not None:
                return False

        return True

    def _before_deadline(self, check: Check) -> bool:
        return check.retry_deadline is not None and self._now() < check.retry_deadline
