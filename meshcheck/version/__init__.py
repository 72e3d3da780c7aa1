from meshcheck.version.version import (
    VERSION,
    VersionCheckError,
    check_client_version,
    check_server_version,
    get_latest_version,
)

__all__ = [
    "VERSION",
    "VersionCheckError",
    "check_client_version",
    "check_server_version",
    "get_latest_version",
]
