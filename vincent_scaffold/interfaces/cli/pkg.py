from __future__ import annotations

import argparse
from typing import List

from vincent_scaffold.utils.i18n import _

from ..scaffold.build import build_package, clean_package
from ..scaffold.deploy import deploy_package, explorer_link
from ..scaffold.detect import VincentPackage, detect_package

SUBCOMMANDS = ("build", "deploy", "clean")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vincent-scaffold pkg",
        description=_("Package-level commands, run from within an ability or policy directory"),
    )
    parser.add_argument("subcommand", choices=SUBCOMMANDS, help=_("build, deploy or clean"))
    parser.add_argument(
        "--record",
        action="store_true",
        help=_("deploy: write the uploaded CID to the metadata file instead of checking it"),
    )
    return parser


def _announce(title: str, package: VincentPackage) -> None:
    print(title)
    print(_("Package: {}").format(package.package_name))
    print(_("Type: {}").format(package.type))


def cmd_build(package: VincentPackage, args: argparse.Namespace) -> int:
    _announce(_("Building current package"), package)
    bundle = build_package(package)
    print(_("Vincent {} built successfully: {}").format(package.type, bundle))
    return 0


def cmd_deploy(package: VincentPackage, args: argparse.Namespace) -> int:
    _announce(_("Deploying current package"), package)
    print(_("Building package before deployment..."))
    build_package(package)
    cid = deploy_package(package, record=args.record)
    print(_("Lit Action deployed successfully"))
    print(explorer_link(cid))
    return 0


def cmd_clean(package: VincentPackage, args: argparse.Namespace) -> int:
    _announce(_("Cleaning current package"), package)
    for path in clean_package(package):
        print(_("Removed {}").format(path.relative_to(package.path).as_posix()))
    print(_("Package cleaned successfully"))
    return 0


HANDLERS = {
    "build": cmd_build,
    "deploy": cmd_deploy,
    "clean": cmd_clean,
}


def run(argv: List[str] | None = None) -> int:
    """Entry point for the ``pkg`` subcommand."""
    args = _build_parser().parse_args(argv)
    package = detect_package()
    return HANDLERS[args.subcommand](package, args)
