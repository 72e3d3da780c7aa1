"""Release version of the CLI and lookups against the versioncheck service.

Versions are channel-prefixed strings such as ``stable-2.0.0`` or
``edge-18.8.3``. The versioncheck endpoint returns the latest release for each
channel; the entry matching the channel of the running CLI is used.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from meshcheck.config import settings

if TYPE_CHECKING:
    from meshcheck.public_api.client import PublicAPIClient

logger = logging.getLogger(__name__)

VERSION = "stable-2.0.0"
CHANNELS = ("stable", "edge")


class VersionCheckError(Exception):
    """Raised when a version cannot be resolved or does not match."""


def get_channel(version: str) -> str:
    channel = version.split("-", 1)[0]
    if channel not in CHANNELS or "-" not in version:
        raise VersionCheckError(f"Unsupported version format: {version}")
    return channel


def _strip_channel(version: str) -> str:
    return version.split("-", 1)[1] if "-" in version else version


def version_mismatch_error(expected: str, actual: str) -> VersionCheckError:
    channel = get_channel(expected)
    return VersionCheckError(
        f"is running version {_strip_channel(actual)} but the latest "
        f"{channel} version is {_strip_channel(expected)}"
    )


def get_latest_version(
    uuid: str,
    source: str,
    url: str | None = None,
    client: httpx.Client | None = None,
) -> str:
    """Ask the versioncheck service for the latest release on our channel."""
    params = {"version": VERSION, "uuid": uuid, "source": source}
    http = client or httpx.Client(timeout=10.0)
    try:
        resp = http.get(url or settings.version_check_url, params=params)
    finally:
        if client is None:
            http.close()

    if resp.status_code != 200:
        raise VersionCheckError(f"Unexpected versioncheck response: {resp.status_code}")

    versions = resp.json()
    channel = get_channel(VERSION)
    latest = versions.get(channel) if isinstance(versions, dict) else None
    if not latest:
        raise VersionCheckError(f"Unsupported version channel: {channel}")

    logger.debug("Latest %s version is %s", channel, latest)
    return latest


def check_client_version(expected_version: str) -> None:
    if VERSION != expected_version:
        raise version_mismatch_error(expected_version, VERSION)


def check_server_version(api_client: PublicAPIClient, expected_version: str) -> None:
    release_version = api_client.version().releaseVersion
    if release_version != expected_version:
        raise version_mismatch_error(expected_version, release_version)
