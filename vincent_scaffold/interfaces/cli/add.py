from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from vincent_scaffold.foundation.project_config import require_config, validate_package_name
from vincent_scaffold.utils.i18n import _

from ..scaffold.packages import create_package
from ..scaffold.template_loader import load_manifest
from . import prompts


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vincent-scaffold add",
        description=_("Create a new Vincent ability or policy"),
    )
    parser.add_argument("type", nargs="?", help=_("Package type: ability or policy"))
    parser.add_argument("name", nargs="?", help=_("Package name, e.g. my-new-ability"))
    parser.add_argument("--directory", help=_("Parent directory (defaults to the one in vincent.json)"))
    return parser


def _validate_name(value: str) -> Optional[str]:
    try:
        validate_package_name(value)
    except ValueError as exc:
        return str(exc)
    return None


def run(argv: List[str] | None = None) -> int:
    """Entry point for the ``add`` subcommand."""
    args = _build_parser().parse_args(argv)
    config = require_config()
    types = sorted(load_manifest().types)

    if args.type is None or args.name is None:
        kind = args.type or prompts.choose(_("What would you like to create?"), types, "ability")
        name = prompts.ask(_("{} name").format(kind.capitalize()), validate=_validate_name)
    else:
        kind, name = args.type, args.name

    if kind not in types:
        print(_("Error: Invalid type: {}. Must be one of: {}").format(kind, ", ".join(types)), file=sys.stderr)
        return 1

    directory = Path(args.directory).resolve() if args.directory else None
    print(_("Creating {} \"{}\"...").format(kind, name))
    target = create_package(kind, name, config, directory)

    for path in sorted(p for p in target.rglob("*") if p.is_file()):
        print(_("  + {}").format(path.relative_to(target).as_posix()))
    print()
    print(_("Successfully created Vincent {}: {}").format(kind, config.package_name(kind, name)))
    print(_("Location: {}").format(target))
    print(_("Next steps:"))
    print(f"  cd {os.path.relpath(target)}")
    print("  npm install")
    return 0
