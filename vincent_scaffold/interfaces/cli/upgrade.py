from __future__ import annotations

import argparse
import sys
from typing import List

from vincent_scaffold.utils.i18n import _

from ..scaffold.version import DISTRIBUTION, check_for_updates, install_version, installed_version
from . import prompts


def cmd_version(argv: List[str]) -> int:
    """Show the installed version and whether a newer release exists."""
    info = check_for_updates()
    print(_("Vincent Scaffold"))
    print(_("Version: {}").format(info.current_version))
    print(_("Package: {}").format(DISTRIBUTION))
    if info.has_update:
        print(_("Update available: {}").format(info.latest_version))
        print(_("Run 'vincent-scaffold upgrade' to update"))
    elif info.current_version != "unknown":
        print(_("You are using the latest version"))
    return 0


def run(argv: List[str] | None = None) -> int:
    """Entry point for the ``upgrade`` subcommand."""
    parser = argparse.ArgumentParser(
        prog="vincent-scaffold upgrade",
        description=_("Check for and install the latest version"),
    )
    parser.add_argument("--yes", "-y", action="store_true", help=_("Upgrade without asking"))
    args = parser.parse_args(argv)

    info = check_for_updates(installed_version())
    if not info.has_update:
        print(_("You're already on the latest version ({})").format(info.current_version))
        return 0

    print(_("Current version: {}").format(info.current_version))
    print(_("Latest version: {}").format(info.latest_version))
    if not args.yes and not prompts.confirm(_("Upgrade to version {}?").format(info.latest_version), default=True):
        print(_("Upgrade cancelled"))
        return 0

    print(_("Installing latest version..."))
    if not install_version(info.latest_version):
        print(
            _("Failed to upgrade. Please try manually: pip install --upgrade {}").format(DISTRIBUTION),
            file=sys.stderr,
        )
        return 1
    print(_("Successfully upgraded to version {}!").format(info.latest_version))
    return 0
