"""vincent-scaffold command line interface.

Project-level commands (from the project root):
  init     Initialise Vincent configuration (required first step)
  add      Create a new Vincent ability or policy
  upgrade  Check for and install the latest version
  version  Show version information

Package-level commands (from within an ability or policy directory):
  pkg build|deploy|clean
"""

from __future__ import annotations

import argparse
import sys
import textwrap
from typing import Callable, List

from vincent_scaffold.foundation.project_config import find_config
from vincent_scaffold.utils.i18n import set_language
from vincent_scaffold.utils.i18n import _ as _t

from . import add, init, pkg, upgrade

CommandHandler = Callable[[List[str]], int]

COMMANDS: dict[str, CommandHandler] = {
    "init": init.run,
    "add": add.run,
    "pkg": pkg.run,
    "upgrade": upgrade.run,
    "version": upgrade.cmd_version,
}


def _build_top_help_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vincent-scaffold",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.description = textwrap.dedent(_t("""
        Project-level commands (from project root):
          init                          Initialise Vincent configuration (required first step)
          add [ability|policy] <name>   Create a new Vincent ability or policy
          upgrade                       Check for and install latest version
          version                       Show version information

        Package-level commands (from within an ability/policy directory):
          pkg build                     Build current package
          pkg deploy                    Deploy current package (builds first)
          pkg clean                     Clean current package (remove dist and generated files)
    """))
    parser.add_argument("command", nargs="?", help=_t("Command to run"))
    return parser


def _extract_lang(argv: List[str]) -> tuple[List[str], str | None]:
    """Extract --lang/-L from argv; return (rest, lang)."""
    rest: List[str] = []
    lang: str | None = None
    i = 0
    while i < len(argv):
        tok = argv[i]
        if tok.startswith("--lang="):
            lang = tok.split("=", 1)[1]
            i += 1
            continue
        if tok == "--lang" or tok == "-L":
            if i + 1 < len(argv):
                lang = argv[i + 1]
                i += 2
                continue
            i += 1
            continue
        rest.append(tok)
        i += 1
    return rest, lang


def main(argv: List[str] | None = None) -> int:
    """Main CLI entry point."""
    argv = list(argv) if argv is not None else sys.argv[1:]
    argv, lang = _extract_lang(argv)
    set_language(lang)

    if not argv:
        return _run_without_command()

    if argv[0] in {"-h", "--help"}:
        _build_top_help_parser().print_help()
        return 0
    if argv[0] in {"-v", "--version"}:
        return _dispatch_command(COMMANDS["version"], [])

    cmd, rest = argv[0], argv[1:]
    if cmd in COMMANDS:
        return _dispatch_command(COMMANDS[cmd], rest)
    return _unknown_command(cmd)


def _run_without_command() -> int:
    if find_config() is None:
        print(_t("Vincent configuration not found!"), file=sys.stderr)
        print(_t("Run 'vincent-scaffold init' to initialise your Vincent development environment first."), file=sys.stderr)
        return 1
    return _dispatch_command(COMMANDS["add"], [])


def _dispatch_command(handler: CommandHandler, rest: List[str]) -> int:
    try:
        return handler(rest)
    except KeyboardInterrupt:
        print(_t("\nInterrupted"), file=sys.stderr)
        return 130
    except Exception as e:
        print(_t("Error: {}").format(str(e)), file=sys.stderr)
        return 1


def _unknown_command(cmd: str | None) -> int:
    print(_t("Error: Unknown command '{}'").format(cmd), file=sys.stderr)
    print(_t("Run 'vincent-scaffold --help' for available commands."), file=sys.stderr)
    return 2


if __name__ == "__main__":
    sys.exit(main())
