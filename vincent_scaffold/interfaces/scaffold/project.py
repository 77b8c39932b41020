"""Project-level setup performed by ``vincent-scaffold init``.

Only ``vincent.json`` and the package directories are mandatory. The remaining
steps (examples, ``.gitignore``, ``package.json``, e2e harness) degrade to
warnings so a partially configured project still initialises.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from vincent_scaffold.exceptions import VincentScaffoldError
from vincent_scaffold.foundation.project_config import (
    DEFAULT_E2E_DIR,
    ProjectConfig,
    write_config,
)

from .packages import create_package
from .template_loader import load_manifest, templates_root, walk_resources

__all__ = [
    "ENV_SAMPLE_FILENAME",
    "STATE_FILE_ENTRY",
    "GITIGNORE_ENTRIES",
    "DEFAULT_PACKAGE_JSON",
    "InitReport",
    "write_env_sample",
    "create_default_examples",
    "update_gitignore",
    "vincent_scripts",
    "update_package_json",
    "copy_e2e_template",
    "initialize_project",
]

logger = logging.getLogger(__name__)

ENV_SAMPLE_FILENAME = ".env.vincent-sample"
STATE_FILE_ENTRY = ".e2e-state.json"

GITIGNORE_ENTRIES = {
    STATE_FILE_ENTRY: "# Vincent state file",
    "node_modules/": "# Dependencies",
}

DEFAULT_PACKAGE_JSON: Dict[str, Any] = {
    "name": "vincent-project",
    "version": "1.0.0",
    "description": "Vincent project with abilities and policies",
    "private": True,
}


@dataclass
class InitReport:
    config_path: Path
    created: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def write_env_sample(root: Path) -> Path:
    manifest = load_manifest()
    target = Path(root) / ENV_SAMPLE_FILENAME
    target.write_text(templates_root().joinpath(manifest.env_sample).read_text(encoding="utf-8"), encoding="utf-8")
    return target


def create_default_examples(config: ProjectConfig) -> tuple[List[str], List[str]]:
    """Create the default examples; existing directories are left alone.

    Returns ``(created package names, skipped package names)``.
    """
    created: List[str] = []
    skipped: List[str] = []
    for example in load_manifest().default_examples:
        package_name = config.package_name(example.type, example.name)
        if (config.directory_for(example.type) / example.name).exists():
            skipped.append(package_name)
            continue
        create_package(example.type, example.name, config)
        created.append(package_name)
    return created, skipped


def update_gitignore(root: Path) -> List[str]:
    """Append missing Vincent entries to ``.gitignore``; return the entries added."""
    path = Path(root) / ".gitignore"
    content = path.read_text(encoding="utf-8") if path.exists() else ""
    added: List[str] = []
    for entry, comment in GITIGNORE_ENTRIES.items():
        if entry in content:
            continue
        if content and not content.endswith("\n"):
            content += "\n"
        content += f"\n{comment}\n{entry}\n"
        added.append(entry)
    if added:
        path.write_text(content, encoding="utf-8")
    return added


def vincent_scripts(config: ProjectConfig, e2e_dir: str = DEFAULT_E2E_DIR) -> Dict[str, str]:
    manifest = load_manifest()
    steps = []
    for example in manifest.default_examples:
        directory = config.abilities_dir if example.type == "ability" else config.policies_dir
        path = f"{directory.rstrip('/')}/{example.name}"
        steps.append(f"(cd {path} && npm install && npm run build)")
    e2e_script = (Path(e2e_dir) / "e2e.py").as_posix()
    return {
        "vincent:build": " && ".join(steps),
        "vincent:e2e": f"python {e2e_script}",
        "vincent:reset": f"rm -f {STATE_FILE_ENTRY}",
    }


def update_package_json(root: Path, config: ProjectConfig, e2e_dir: str = DEFAULT_E2E_DIR) -> bool:
    """Merge the Vincent scripts into ``package.json``; return True if it was created."""
    path = Path(root) / "package.json"
    created = not path.exists()
    data: Dict[str, Any] = dict(DEFAULT_PACKAGE_JSON) if created else json.loads(path.read_text(encoding="utf-8"))
    scripts = data.setdefault("scripts", {})
    scripts.update(vincent_scripts(config, e2e_dir))
    dev_dependencies = data.setdefault("devDependencies", {})
    dev_dependencies.setdefault("@lit-protocol/vincent-app-sdk", "*")
    dev_dependencies.setdefault("@lit-protocol/vincent-scaffold-sdk", "*")
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return created


def copy_e2e_template(target: Path) -> bool:
    """Copy the e2e harness into ``target``; False if it already exists."""
    target = Path(target)
    if target.exists():
        return False
    source = templates_root().joinpath(load_manifest().e2e_directory)
    for relative, entry in walk_resources(source):
        if "__pycache__" in relative:
            continue
        destination = target / relative
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(entry.read_bytes())
    return True


def initialize_project(
    root: Path,
    config: ProjectConfig,
    *,
    e2e_dir: str = DEFAULT_E2E_DIR,
    with_examples: bool = True,
) -> InitReport:
    root = Path(root)
    config_path = write_config(config, root)
    report = InitReport(config_path=config_path)

    for kind in ("ability", "policy"):
        directory = config.directory_for(kind)
        if not directory.exists():
            directory.mkdir(parents=True)
            report.created.append(str(directory))

    write_env_sample(root)
    report.created.append(ENV_SAMPLE_FILENAME)

    if with_examples:
        try:
            created, skipped = create_default_examples(config)
        except (OSError, ValueError, VincentScaffoldError) as exc:
            logger.warning("scaffold.init.examples_failed", extra={"error": str(exc)})
            report.warnings.append(f"Could not create default examples: {exc}")
        else:
            report.created.extend(created)
            report.skipped.extend(skipped)

    try:
        added = update_gitignore(root)
    except OSError as exc:
        logger.warning("scaffold.init.gitignore_failed", extra={"error": str(exc)})
        report.warnings.append(f"Could not update .gitignore: {exc}")
    else:
        if added:
            report.created.append(".gitignore")

    try:
        update_package_json(root, config, e2e_dir)
    except (OSError, ValueError) as exc:
        logger.warning("scaffold.init.package_json_failed", extra={"error": str(exc)})
        report.warnings.append(f"Could not update package.json: {exc}")
    else:
        report.created.append("package.json")

    e2e_target = (root / e2e_dir).resolve()
    try:
        if copy_e2e_template(e2e_target):
            report.created.append(e2e_dir)
        else:
            report.skipped.append(e2e_dir)
    except OSError as exc:
        logger.warning("scaffold.init.e2e_failed", extra={"error": str(exc)})
        report.warnings.append(f"Could not create e2e directory: {exc}")

    logger.info(
        "scaffold.init.completed",
        extra={"root": str(root), "created_count": len(report.created), "warning_count": len(report.warnings)},
    )
    return report
