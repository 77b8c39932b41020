"""``vincent.json`` project configuration."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from vincent_scaffold.exceptions import ProjectConfigError

__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_NAMESPACE",
    "DEFAULT_ABILITY_PREFIX",
    "DEFAULT_POLICY_PREFIX",
    "DEFAULT_ABILITIES_DIR",
    "DEFAULT_POLICIES_DIR",
    "DEFAULT_E2E_DIR",
    "NAMESPACE_PATTERN",
    "PACKAGE_NAME_PATTERN",
    "ProjectConfig",
    "find_config",
    "load_config",
    "require_config",
    "write_config",
    "validate_namespace",
    "validate_package_name",
]

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "vincent.json"

DEFAULT_NAMESPACE = "@agentic-ai"
DEFAULT_ABILITY_PREFIX = "vincent-ability-"
DEFAULT_POLICY_PREFIX = "vincent-policy-"
DEFAULT_ABILITIES_DIR = "./vincent-packages/abilities"
DEFAULT_POLICIES_DIR = "./vincent-packages/policies"
DEFAULT_E2E_DIR = "./vincent-e2e"

NAMESPACE_PATTERN = re.compile(r"^@[a-z0-9-_]+$")
PACKAGE_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$|^[a-z0-9]$")


def validate_namespace(value: str) -> str:
    if not NAMESPACE_PATTERN.match(value):
        raise ValueError(
            f"Invalid namespace '{value}': must start with @ and contain only lowercase letters, numbers, hyphens and underscores"
        )
    return value


def validate_package_name(value: str) -> str:
    if not PACKAGE_NAME_PATTERN.match(value):
        raise ValueError(
            f"Invalid name '{value}': use lowercase letters, numbers and hyphens, starting and ending with a letter or number"
        )
    return value


@dataclass(frozen=True)
class ProjectConfig:
    namespace: str = DEFAULT_NAMESPACE
    ability_prefix: str = DEFAULT_ABILITY_PREFIX
    policy_prefix: str = DEFAULT_POLICY_PREFIX
    abilities_dir: str = DEFAULT_ABILITIES_DIR
    policies_dir: str = DEFAULT_POLICIES_DIR
    root: Optional[Path] = None

    def prefix_for(self, kind: str) -> str:
        return self.ability_prefix if kind == "ability" else self.policy_prefix

    def directory_for(self, kind: str) -> Path:
        raw = self.abilities_dir if kind == "ability" else self.policies_dir
        base = self.root if self.root is not None else Path.cwd()
        return (base / raw).resolve()

    def package_name(self, kind: str, name: str) -> str:
        return f"{self.namespace}/{self.prefix_for(kind)}{name}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any], root: Optional[Path] = None) -> ProjectConfig:
        package = data.get("package") or {}
        directories = data.get("directories") or {}
        # Older files call abilities "tools".
        return cls(
            namespace=package.get("namespace", DEFAULT_NAMESPACE),
            ability_prefix=package.get("abilityPrefix", package.get("toolPrefix", DEFAULT_ABILITY_PREFIX)),
            policy_prefix=package.get("policyPrefix", DEFAULT_POLICY_PREFIX),
            abilities_dir=directories.get("abilities", directories.get("tools", DEFAULT_ABILITIES_DIR)),
            policies_dir=directories.get("policies", DEFAULT_POLICIES_DIR),
            root=root,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "package": {
                "namespace": self.namespace,
                "abilityPrefix": self.ability_prefix,
                "policyPrefix": self.policy_prefix,
            },
            "directories": {
                "abilities": self.abilities_dir,
                "policies": self.policies_dir,
            },
        }


def find_config(start: Optional[Path] = None) -> Optional[Path]:
    """Return the nearest ``vincent.json`` at or above ``start``."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_config(start: Optional[Path] = None) -> Optional[ProjectConfig]:
    path = find_config(start)
    if path is None:
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("project.config.unreadable", extra={"path": str(path), "error": str(exc)})
        raise ProjectConfigError(f"Error reading {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ProjectConfigError(f"Error reading {path}: expected a JSON object")
    return ProjectConfig.from_dict(data, root=path.parent)


def require_config(start: Optional[Path] = None) -> ProjectConfig:
    config = load_config(start)
    if config is None:
        raise ProjectConfigError(f"{CONFIG_FILENAME} not found. Please run 'vincent-scaffold init' first.")
    return config


def write_config(config: ProjectConfig, directory: Optional[Path] = None) -> Path:
    target = (directory or Path.cwd()) / CONFIG_FILENAME
    target.write_text(json.dumps(config.to_dict(), indent=2) + "\n", encoding="utf-8")
    logger.info("project.config.written", extra={"path": str(target)})
    return target
