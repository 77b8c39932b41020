"""Lit Action generation and esbuild bundling for a single package."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Callable, List, Sequence

from vincent_scaffold.exceptions import BuildError

from .detect import VincentPackage
from .template_loader import load_manifest, templates_root, validate_template_type

__all__ = [
    "LIT_ACTION_SOURCE",
    "LIT_ACTION_BUNDLE",
    "METAFILE",
    "lit_action_source",
    "generate_lit_action",
    "esbuild_command",
    "bundle_lit_action",
    "build_package",
    "clean_package",
]

logger = logging.getLogger(__name__)

LIT_ACTION_SOURCE = "lit-action.ts"
LIT_ACTION_BUNDLE = "lit-action.js"
METAFILE = "esBuildMetafile.json"

Runner = Callable[..., subprocess.CompletedProcess]


def lit_action_source(kind: str) -> str:
    validate_template_type(kind)
    template = templates_root().joinpath(load_manifest().lit_actions[kind])
    return template.read_text(encoding="utf-8")


def generate_lit_action(kind: str, output_dir: Path) -> Path:
    """Write ``lit-action.ts`` for ``kind`` into ``output_dir``."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / LIT_ACTION_SOURCE
    target.write_text(lit_action_source(kind), encoding="utf-8")
    logger.info("scaffold.build.lit_action_generated", extra={"type": kind, "path": str(target)})
    return target


def esbuild_command(npx: str = "npx") -> List[str]:
    return [
        npx,
        "--yes",
        "esbuild",
        f"./src/generated/{LIT_ACTION_SOURCE}",
        "--bundle",
        "--format=esm",
        "--platform=browser",
        "--tsconfig=./tsconfig.json",
        "--outdir=./src/generated/",
        f"--metafile={METAFILE}",
    ]


def bundle_lit_action(package: VincentPackage, *, runner: Runner = subprocess.run) -> Path:
    npx = shutil.which("npx")
    if npx is None:
        raise BuildError("npx not found on PATH. Install Node.js to bundle Lit Actions.")

    command = esbuild_command(npx)
    try:
        result = runner(command, cwd=package.path, capture_output=True, text=True)
    except OSError as exc:
        raise BuildError(f"Failed to run esbuild: {exc}") from exc
    if result.returncode != 0:
        detail = (result.stderr or result.stdout or "").strip()
        raise BuildError(f"esbuild exited with code {result.returncode}: {detail}")

    metafile = package.path / METAFILE
    if metafile.is_file():
        metafile.write_text(json.dumps(json.loads(metafile.read_text(encoding="utf-8")), indent=2), encoding="utf-8")
    return package.generated_dir / LIT_ACTION_BUNDLE


def build_package(package: VincentPackage, *, runner: Runner = subprocess.run) -> Path:
    if not (package.path / "tsconfig.json").is_file():
        raise BuildError(f"tsconfig.json not found in {package.path}")
    generate_lit_action(package.type, package.generated_dir)
    bundle = bundle_lit_action(package, runner=runner)
    logger.info("scaffold.build.completed", extra={"package": package.package_name, "bundle": str(bundle)})
    return bundle


def clean_package(package: VincentPackage) -> Sequence[Path]:
    removed = []
    for path in (package.path / "dist", package.generated_dir):
        if path.exists():
            shutil.rmtree(path)
            removed.append(path)
    return removed
