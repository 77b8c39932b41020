"""Top level command line interface for vincent-scaffold."""

from __future__ import annotations

from vincent_scaffold.interfaces.cli.main import COMMANDS, main

__all__ = ["main", "COMMANDS"]


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
