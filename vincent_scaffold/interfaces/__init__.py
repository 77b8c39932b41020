"""User-facing surfaces: the CLI and the project/package scaffolding it drives."""
