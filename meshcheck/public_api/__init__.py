from meshcheck.public_api.client import (
    PublicAPIClient,
    PublicAPIError,
    new_external_client,
    new_internal_client,
)
from meshcheck.public_api.models import (
    CheckStatus,
    ListPodsResponse,
    Pod,
    SelfCheckResponse,
    SelfCheckResult,
    VersionInfo,
)

__all__ = [
    "CheckStatus",
    "ListPodsResponse",
    "Pod",
    "PublicAPIClient",
    "PublicAPIError",
    "SelfCheckResponse",
    "SelfCheckResult",
    "VersionInfo",
    "new_external_client",
    "new_internal_client",
]
