"""Installed version lookup and the PyPI update check."""

from __future__ import annotations

import logging
import subprocess
import sys
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version as pkg_version
from typing import Callable, List, Optional

import httpx

__all__ = [
    "DISTRIBUTION",
    "REGISTRY_URL",
    "UPDATE_CHECK_TIMEOUT",
    "UpdateInfo",
    "installed_version",
    "check_for_updates",
    "upgrade_command",
    "install_version",
]

logger = logging.getLogger(__name__)

DISTRIBUTION = "vincent-scaffold"
REGISTRY_URL = "https://pypi.org/pypi/{name}/json"
UPDATE_CHECK_TIMEOUT = 3.0


@dataclass(frozen=True)
class UpdateInfo:
    current_version: str
    latest_version: str
    has_update: bool


def installed_version() -> str:
    try:
        return pkg_version(DISTRIBUTION)
    except PackageNotFoundError:
        return "unknown"


def check_for_updates(
    current: Optional[str] = None,
    *,
    client: Optional[httpx.Client] = None,
) -> UpdateInfo:
    """Compare the installed version with the latest release.

    Network or parsing failures report no update.
    """
    current = current or installed_version()
    owns_client = client is None
    http = client or httpx.Client(timeout=UPDATE_CHECK_TIMEOUT)
    try:
        response = http.get(REGISTRY_URL.format(name=DISTRIBUTION))
        response.raise_for_status()
        latest = response.json()["info"]["version"]
    except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
        logger.debug("scaffold.version.check_failed", extra={"error": str(exc)})
        return UpdateInfo(current, current, False)
    finally:
        if owns_client:
            http.close()
    return UpdateInfo(current, latest, latest != current)


def upgrade_command(target_version: str) -> List[str]:
    return [sys.executable, "-m", "pip", "install", "--upgrade", f"{DISTRIBUTION}=={target_version}"]


def install_version(
    target_version: str,
    *,
    runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> bool:
    result = runner(upgrade_command(target_version))
    logger.info("scaffold.version.upgrade", extra={"version": target_version, "returncode": result.returncode})
    return result.returncode == 0
