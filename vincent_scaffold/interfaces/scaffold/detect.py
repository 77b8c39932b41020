"""Recognise Vincent ability and policy packages on disk."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from vincent_scaffold.exceptions import PackageDetectionError
from vincent_scaffold.foundation.project_config import ProjectConfig

from .template_loader import load_manifest

__all__ = ["VincentPackage", "LEGACY_IMPLEMENTATIONS", "inspect_package", "detect_package", "list_packages"]

logger = logging.getLogger(__name__)

# Abilities used to be called tools.
LEGACY_IMPLEMENTATIONS = {"ability": ["src/lib/vincent-tool.ts"]}


@dataclass(frozen=True)
class VincentPackage:
    type: str
    name: str
    package_name: str
    path: Path
    description: str = ""

    @property
    def generated_dir(self) -> Path:
        return self.path / "src" / "generated"

    @property
    def metadata_file(self) -> Path:
        return self.generated_dir / load_manifest().types[self.type].metadata_file


def _read_package_json(path: Path) -> Optional[dict]:
    try:
        data = json.loads((path / "package.json").read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.debug("scaffold.detect.package_json_unreadable", extra={"path": str(path), "error": str(exc)})
        return None
    return data if isinstance(data, dict) else None


def _has_vincent_dependency(package_json: dict) -> bool:
    dependencies = package_json.get("dependencies") or {}
    return any(name in dependencies for name in load_manifest().vincent_dependencies)


def _implementation_type(path: Path) -> Optional[str]:
    for kind, template in load_manifest().types.items():
        candidates = [template.implementation, *LEGACY_IMPLEMENTATIONS.get(kind, [])]
        if any((path / candidate).is_file() for candidate in candidates):
            return kind
    return None


def inspect_package(directory: Path) -> Optional[VincentPackage]:
    """Return the package in ``directory`` or ``None`` if it is not a Vincent package."""
    path = Path(directory).resolve()
    if not (path / "package.json").is_file() or not (path / "tsconfig.json").is_file():
        return None
    package_json = _read_package_json(path)
    if package_json is None or not _has_vincent_dependency(package_json):
        return None
    kind = _implementation_type(path)
    if kind is None:
        return None
    return VincentPackage(
        type=kind,
        name=path.name,
        package_name=package_json.get("name") or path.name,
        path=path,
        description=package_json.get("description") or f"Vincent {kind} project",
    )


def detect_package(directory: Optional[Path] = None) -> VincentPackage:
    package = inspect_package(directory or Path.cwd())
    if package is None:
        raise PackageDetectionError(
            "Current directory is not a Vincent package. Run this command from within a Vincent ability or policy directory"
        )
    return package


def list_packages(config: ProjectConfig, kind: str) -> List[VincentPackage]:
    base = config.directory_for(kind)
    if not base.is_dir():
        return []
    packages = []
    for entry in sorted(base.iterdir()):
        if not entry.is_dir():
            continue
        package = inspect_package(entry)
        if package is not None and package.type == kind:
            packages.append(package)
    return packages
