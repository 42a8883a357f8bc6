"""Message catalogs with polyglot style ``%{name}`` interpolation."""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Mapping

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en_US"
TRANSLATIONS_DIR = Path(__file__).resolve().parent / "translations"

_PLACEHOLDER = re.compile(r"%\{(\w+)\}")


def standardize_language(locale: str) -> str:
    """Turn ``en-us`` or ``en_US`` style identifiers into ``en_US``."""
    parts = locale.replace("-", "_").split("_")
    if len(parts) == 1:
        return parts[0].lower()
    return f"{parts[0].lower()}_{parts[1].upper()}"


def load_catalogs(directory: Path = TRANSLATIONS_DIR) -> Dict[str, Dict[str, Any]]:
    catalogs: Dict[str, Dict[str, Any]] = {}
    for path in sorted(directory.glob("*.json")):
        with path.open(encoding="utf-8") as fh:
            catalogs[path.stem] = json.load(fh)
    return catalogs


class Translator:
    def __init__(self, catalogs: Mapping[str, Mapping[str, Any]], language: str = DEFAULT_LANGUAGE) -> None:
        self.catalogs = catalogs
        self.language = self.resolve_language(language)

    def resolve_language(self, locale: str) -> str:
        language = standardize_language(locale)
        if language in self.catalogs:
            return language
        prefix = language.split("_")[0]
        for name in self.catalogs:
            if name.split("_")[0] == prefix:
                return name
        return DEFAULT_LANGUAGE

    @staticmethod
    def _lookup(catalog: Mapping[str, Any], key: str) -> str | None:
        node: Any = catalog
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return None
            node = node[part]
        return node if isinstance(node, str) else None

    def t(self, key: str, locale: str | None = None, **params: Any) -> str:
        language = self.resolve_language(locale) if locale else self.language
        phrase = self._lookup(self.catalogs.get(language, {}), key)
        if phrase is None and language != DEFAULT_LANGUAGE:
            phrase = self._lookup(self.catalogs.get(DEFAULT_LANGUAGE, {}), key)
        if phrase is None:
            logger.debug("Missing translation for %s", key)
            return key
        return _PLACEHOLDER.sub(lambda match: str(params.get(match.group(1), match.group(0))), phrase)
