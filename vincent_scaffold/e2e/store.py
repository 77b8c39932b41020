"""JSON file persistence for the e2e state document."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

from vincent_scaffold.exceptions import StateSaveError

__all__ = [
    "STATE_VERSION",
    "DEFAULT_STATE_FILENAME",
    "Document",
    "PersistentStateStore",
    "empty_document",
]

logger = logging.getLogger(__name__)

STATE_VERSION = "2.0.0"
DEFAULT_STATE_FILENAME = ".e2e-state.json"

Document = Dict[str, Any]


def empty_document() -> Document:
    return {"version": STATE_VERSION, "testFiles": {}}


class PersistentStateStore:
    """Load and save the whole state document at a fixed path.

    A missing, unreadable or out-of-version file loads as an empty document.
    Saving rewrites the file atomically and raises :class:`StateSaveError` on
    any I/O failure.
    """

    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        self.path = Path(path) if path is not None else Path.cwd() / DEFAULT_STATE_FILENAME

    async def load(self) -> Document:
        return await asyncio.to_thread(self.load_sync)

    async def save(self, document: Document) -> None:
        await asyncio.to_thread(self.save_sync, document)

    def load_sync(self) -> Document:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("e2e.state.missing", extra={"path": str(self.path)})
            return empty_document()
        except OSError as exc:
            logger.warning("e2e.state.unreadable", extra={"path": str(self.path), "error": str(exc)})
            return empty_document()

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("e2e.state.invalid_json", extra={"path": str(self.path), "error": str(exc)})
            return empty_document()

        if not isinstance(document, dict) or document.get("version") != STATE_VERSION:
            found = document.get("version") if isinstance(document, dict) else None
            logger.warning(
                "e2e.state.version_mismatch",
                extra={"path": str(self.path), "expected": STATE_VERSION, "found": found},
            )
            return empty_document()

        document.setdefault("testFiles", {})
        logger.info("e2e.state.loaded", extra={"path": str(self.path)})
        return document

    def save_sync(self, document: Document) -> None:
        payload = json.dumps(document, indent=2)
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.error("e2e.state.save_failed", extra={"path": str(self.path), "error": str(exc)})
            raise StateSaveError(f"Failed to save e2e state to {self.path}: {exc}") from exc
        logger.debug("e2e.state.saved", extra={"path": str(self.path)})
