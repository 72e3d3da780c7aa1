"""Health check builder, sequential runner and pod validators."""

from .checker import HealthChecker, standard_checks
from .models import (
    Check,
    CheckResult,
    Checks,
    HealthCheckError,
    HealthCheckOptions,
    RemoteSelfCheckAction,
    SimpleAction,
)
from .runner import CheckRunner
from .session import SessionContext
