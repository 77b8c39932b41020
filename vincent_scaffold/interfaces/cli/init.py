from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from vincent_scaffold.foundation.project_config import (
    CONFIG_FILENAME,
    DEFAULT_ABILITIES_DIR,
    DEFAULT_ABILITY_PREFIX,
    DEFAULT_E2E_DIR,
    DEFAULT_NAMESPACE,
    DEFAULT_POLICIES_DIR,
    DEFAULT_POLICY_PREFIX,
    ProjectConfig,
    validate_namespace,
)
from vincent_scaffold.utils.i18n import _

from ..scaffold.project import ENV_SAMPLE_FILENAME, initialize_project
from ..scaffold.template_loader import load_manifest
from . import prompts


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vincent-scaffold init",
        description=_("Initialise Vincent configuration in the current directory"),
    )
    parser.add_argument("--namespace", help=_("Package namespace, e.g. @mycompany"))
    parser.add_argument("--ability-prefix", help=_("Ability package prefix"))
    parser.add_argument("--policy-prefix", help=_("Policy package prefix"))
    parser.add_argument("--abilities-dir", help=_("Abilities directory"))
    parser.add_argument("--policies-dir", help=_("Policies directory"))
    parser.add_argument("--e2e-dir", help=_("E2E testing directory"))
    parser.add_argument("--yes", "-y", action="store_true", help=_("Accept defaults without prompting"))
    parser.add_argument("--force", action="store_true", help=_("Overwrite an existing vincent.json"))
    parser.add_argument("--no-examples", action="store_true", help=_("Skip the default ability and policy"))
    return parser


def _validate_namespace(value: str) -> Optional[str]:
    try:
        validate_namespace(value)
    except ValueError as exc:
        return str(exc)
    return None


def _required(value: str) -> Optional[str]:
    return None if value.strip() else _("E2E directory is required")


def _collect_answers(args: argparse.Namespace) -> tuple[ProjectConfig, str]:
    def value(given: Optional[str], message: str, default: str, validate=None) -> str:
        if given is not None:
            return given
        if args.yes:
            return default
        return prompts.ask(message, default, validate)

    namespace = value(args.namespace, _("Package namespace (e.g., @mycompany, @username)"), DEFAULT_NAMESPACE, _validate_namespace)
    validate_namespace(namespace)
    config = ProjectConfig(
        namespace=namespace,
        ability_prefix=value(args.ability_prefix, _("Ability package prefix"), DEFAULT_ABILITY_PREFIX),
        policy_prefix=value(args.policy_prefix, _("Policy package prefix"), DEFAULT_POLICY_PREFIX),
        abilities_dir=value(args.abilities_dir, _("Abilities directory"), DEFAULT_ABILITIES_DIR),
        policies_dir=value(args.policies_dir, _("Policies directory"), DEFAULT_POLICIES_DIR),
        root=Path.cwd(),
    )
    e2e_dir = value(args.e2e_dir, _("E2E testing directory"), DEFAULT_E2E_DIR, _required).strip()
    return config, e2e_dir


def run(argv: List[str] | None = None) -> int:
    """Entry point for the ``init`` subcommand."""
    args = _build_parser().parse_args(argv)
    root = Path.cwd()

    if (root / CONFIG_FILENAME).exists() and not args.force:
        if args.yes:
            print(_("vincent.json already exists. Use --force to overwrite."), file=sys.stderr)
            return 1
        if not prompts.confirm(_("vincent.json already exists. Overwrite?"), default=False):
            print(_("Initialization cancelled"))
            return 0

    print(_("Welcome to Vincent Scaffold! Let's set up your Vincent development environment."))
    config, e2e_dir = _collect_answers(args)
    report = initialize_project(root, config, e2e_dir=e2e_dir, with_examples=not args.no_examples)

    print(_("Created {}").format(report.config_path.name))
    for item in report.created:
        print(_("  + {}").format(item))
    for item in report.skipped:
        print(_("  = {} (already exists, skipped)").format(item))
    for warning in report.warnings:
        print(_("Warning: {}").format(warning), file=sys.stderr)

    print()
    print(_("Vincent development environment initialised!"))
    if not args.no_examples:
        print(_("Default examples:"))
        for example in load_manifest().default_examples:
            print(f"  - {example.name} {example.type}: {example.summary}")
    print()
    print(_("Next steps:"))
    print(_("  1. Copy {} to .env and fill in your values").format(ENV_SAMPLE_FILENAME))
    print(_("  2. Run npm install to install dependencies"))
    print(_("  3. Run npm run vincent:build to build the default examples"))
    print(_("  4. Run npm run vincent:e2e to test your Vincent packages"))
    return 0
