"""Per test file and per configuration view over the loaded state document."""

from __future__ import annotations

import inspect
import logging
import sysconfig
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence

from .config_hash import compute_config_hash
from .models import format_timestamp, utc_now
from .store import Document, PersistentStateStore, empty_document

__all__ = [
    "DEFAULT_CONFIG_HASH",
    "UNKNOWN_TEST_FILE",
    "StateSession",
    "detect_test_file_name",
]

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_HASH = "default"
UNKNOWN_TEST_FILE = "unknown-test.py"

_PACKAGE_ROOT = Path(__file__).resolve().parents[1]
_TEST_FILE_SECTIONS = ("accounts", "pkps", "capacityCredits", "configurations", "appVersions")

Clock = Callable[[], datetime]


def _library_roots() -> tuple[Path, ...]:
    roots = []
    for key in ("stdlib", "platstdlib", "purelib", "platlib"):
        value = sysconfig.get_paths().get(key)
        if value:
            roots.append(Path(value).resolve())
    return tuple(roots)


def detect_test_file_name() -> str:
    """Return the file name of the nearest caller outside this package.

    Frames from this package, the standard library and installed packages are
    skipped; the first remaining frame names the test script.
    """
    library_roots = _library_roots()
    for frame in inspect.stack(context=0):
        filename = frame.filename
        if not filename or filename.startswith("<"):
            continue
        path = Path(filename).resolve()
        if path.is_relative_to(_PACKAGE_ROOT):
            continue
        if any(path.is_relative_to(root) for root in library_roots):
            continue
        return path.name
    return UNKNOWN_TEST_FILE


class StateSession:
    """Holds the in-memory document and the (test file, network, config) slot."""

    def __init__(
        self,
        store: PersistentStateStore,
        network: str,
        *,
        test_file_name: Optional[str] = None,
        config_hash: str = DEFAULT_CONFIG_HASH,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.network = network
        self.test_file_name = test_file_name or detect_test_file_name()
        self.config_hash = config_hash
        self.clock = clock
        self.document: Document = empty_document()
        self.current_configuration()

    def now(self) -> datetime:
        return self.clock()

    def timestamp(self) -> str:
        return format_timestamp(self.clock())

    async def load(self) -> None:
        self.document = await self.store.load()
        self.current_configuration()
        logger.info(
            "e2e.session.loaded",
            extra={"test_file": self.test_file_name, "config_hash": self.config_hash},
        )

    async def save(self) -> None:
        self.current_configuration()["lastUsed"] = self.timestamp()
        await self.store.save(self.document)

    def test_file(self) -> Dict[str, Any]:
        files = self.document.setdefault("testFiles", {})
        section = files.setdefault(self.test_file_name, {})
        for key in _TEST_FILE_SECTIONS:
            section.setdefault(key, {})
        return section

    def configurations(self) -> Dict[str, Any]:
        return self.test_file()["configurations"]

    def app_versions(self) -> Dict[str, Any]:
        return self.test_file()["appVersions"]

    def current_configuration(self) -> Dict[str, Any]:
        configurations = self.configurations()
        config = configurations.get(self.config_hash)
        if config is None:
            config = {
                "configHash": self.config_hash,
                "abilityIpfsCids": [],
                "abilityPolicyCids": [],
                "lastUsed": self.timestamp(),
                "network": self.network,
                "state": {},
            }
            configurations[self.config_hash] = config
        config.setdefault("state", {})
        return config

    def legacy(self, section: str) -> Any:
        """Return this network's entry from a pre per-file shared section."""
        shared = self.document.get(section) or {}
        return shared.get(self.network)

    def set_configuration(self, ability_ids: Sequence[str], policy_ids: Sequence[Sequence[str]]) -> str:
        """Switch to the configuration identified by the given identifiers."""
        new_hash = compute_config_hash(ability_ids, policy_ids)
        if new_hash != self.config_hash:
            logger.info(
                "e2e.session.configuration_switched",
                extra={"from": self.config_hash, "to": new_hash, "test_file": self.test_file_name},
            )
            self.config_hash = new_hash
        config = self.current_configuration()
        config["abilityIpfsCids"] = list(ability_ids)
        config["abilityPolicyCids"] = [list(p) for p in policy_ids]
        config["lastUsed"] = self.timestamp()
        return new_hash
