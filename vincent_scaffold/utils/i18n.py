from __future__ import annotations

import ast
import gettext
import os
from pathlib import Path
from typing import Optional, Protocol

_DOMAIN = "vincent_scaffold"


class Translator(Protocol):
    def gettext(self, message: str) -> str:
        ...


_translator: Translator = gettext.NullTranslations()
_current_language: Optional[str] = None


def _locale_dir() -> Path:
    # vincent_scaffold/utils/i18n.py -> vincent_scaffold/locale
    return Path(__file__).resolve().parents[1] / "locale"


class _CatalogTranslations:
    def __init__(self, catalog: dict[str, str]):
        self._catalog = catalog

    def gettext(self, message: str) -> str:
        return self._catalog.get(message) or message


def _load_po(lang: str | None) -> Optional[_CatalogTranslations]:
    if not lang:
        return None
    po_path = _locale_dir() / lang / "LC_MESSAGES" / f"{_DOMAIN}.po"
    if not po_path.exists():
        return None
    return _CatalogTranslations(parse_po(po_path))


def set_language(lang: Optional[str]) -> None:
    """Install the language for CLI messages.

    ``None`` detects the language from the environment. Unknown languages
    fall back to the untranslated English text.
    """
    global _translator, _current_language

    if not lang:
        lang = detect_language()

    catalog = _load_po(lang)
    if catalog is not None:
        _translator = catalog
    else:
        _translator = gettext.translation(
            domain=_DOMAIN,
            localedir=str(_locale_dir()),
            languages=[lang],
            fallback=True,
        )
    _current_language = lang


def _(message: str) -> str:
    """Translate a message using the currently installed translator."""
    return _translator.gettext(message)


def current_language() -> Optional[str]:
    return _current_language


def detect_language() -> str:
    """Return preferred language code.

    Priority:
    - VINCENT_LANG
    - LANGUAGE / LC_ALL / LC_MESSAGES / LANG (first two-letter code)
    - "en"
    """
    lang = os.environ.get("VINCENT_LANG")
    if lang:
        return _normalize_lang(lang)

    for key in ("LANGUAGE", "LC_ALL", "LC_MESSAGES", "LANG"):
        val = os.environ.get(key)
        if val:
            return _normalize_lang(val)
    return "en"


def _normalize_lang(value: str) -> str:
    # e.g., "ko_KR.UTF-8:en_US" -> "ko"
    token = value.split(":", 1)[0]
    token = token.split(".", 1)[0]
    token = token.replace("-", "_")
    return token.split("_", 1)[0].lower() or "en"


def parse_po(path: Path) -> dict[str, str]:
    """Parse a ``.po`` catalog into a ``msgid -> msgstr`` mapping."""
    catalog: dict[str, str] = {}
    msgid: Optional[str] = None
    msgstr: Optional[str] = None
    target: Optional[str] = None

    def flush() -> None:
        if msgid and msgstr is not None:
            catalog[msgid] = msgstr

    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("msgid "):
            flush()
            msgid, msgstr, target = _unquote(line[6:].strip()), None, "id"
        elif line.startswith("msgstr "):
            msgstr, target = _unquote(line[7:].strip()), "str"
        elif line.startswith('"'):
            if target == "id" and msgid is not None:
                msgid += _unquote(line)
            elif target == "str" and msgstr is not None:
                msgstr += _unquote(line)
    flush()
    return catalog


def _unquote(text: str) -> str:
    try:
        return str(ast.literal_eval(text))
    except (SyntaxError, ValueError):
        if text.startswith('"') and text.endswith('"'):
            return text[1:-1]
        return text
