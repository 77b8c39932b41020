"""Create ability and policy packages from the packaged templates."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, Optional

from vincent_scaffold.exceptions import TemplateError
from vincent_scaffold.foundation.project_config import ProjectConfig, validate_package_name

from .template_loader import load_manifest, render_template, to_camel_case, validate_template_type

__all__ = ["template_variables", "create_package_from_template", "create_package"]

logger = logging.getLogger(__name__)


def template_variables(config: ProjectConfig, kind: str, name: str) -> Dict[str, str]:
    variables = {
        "name": name,
        "type": kind,
        "namespace": config.namespace,
        "packageName": config.package_name(kind, name),
        "camelCaseName": to_camel_case(name),
    }
    if kind == "ability":
        variables["policyPackageName"] = config.package_name("policy", load_manifest().default_policy)
    return variables


def create_package_from_template(kind: str, target: Path, variables: Dict[str, str]) -> Path:
    """Render ``kind`` into ``target``; the directory must not exist yet."""
    validate_template_type(kind)
    target = Path(target)
    if target.exists():
        raise TemplateError(f"Directory {target} already exists")

    files = render_template(kind, variables)
    target.mkdir(parents=True)
    try:
        for relative, content in files.items():
            destination = target / relative
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(content, encoding="utf-8")
    except OSError as exc:
        shutil.rmtree(target, ignore_errors=True)
        raise TemplateError(f"Failed to create {kind} at {target}: {exc}") from exc

    logger.info("scaffold.package.created", extra={"type": kind, "path": str(target), "files": len(files)})
    return target


def create_package(
    kind: str,
    name: str,
    config: ProjectConfig,
    directory: Optional[Path] = None,
) -> Path:
    validate_template_type(kind)
    validate_package_name(name)
    base = Path(directory) if directory is not None else config.directory_for(kind)
    return create_package_from_template(kind, base / name, template_variables(config, kind, name))
