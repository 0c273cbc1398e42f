"""
Service: localization.py
Rôle:
- Fournir `translate(key, args)` : recherche opaque d'un texte localisé par clé.
- Le cœur (resolver/contrôleur) ne contient aucune prose : il choisit des clés.

Fichier source:
- assistant/data/strings.json → {"es": {"ADVISOR_...": "..."}, "en": {...}}

Règles:
- Langue courante, puis langue de repli, puis la clé elle-même si rien n'est trouvé.
- Les arguments nommés sont substitués via `{nom}`; un nom absent reste tel quel.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .io_utils import read_json

logger = logging.getLogger(__name__)


class _KeepMissing(dict):
    """Mapping de format qui laisse `{inconnu}` intact."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def format_named(template: str, args: Mapping[str, Any]) -> str:
    try:
        return template.format_map(_KeepMissing(args))
    except (ValueError, IndexError, KeyError, AttributeError):
        # accolades non appariées ou placeholder positionnel : texte brut
        return template


class Translator:
    def __init__(
        self,
        strings: Optional[Dict[str, Dict[str, str]]] = None,
        locale: str = "en",
        fallback_locale: str = "en",
    ) -> None:
        self.strings: Dict[str, Dict[str, str]] = strings or {}
        self.locale = locale
        self.fallback_locale = fallback_locale

    @classmethod
    def from_file(cls, path: Path, locale: str = "en", fallback_locale: str = "en") -> "Translator":
        raw = read_json(path)
        if not isinstance(raw, dict):
            logger.warning("Strings file missing or invalid", extra={"strings_path": str(path)})
            raw = {}
        return cls(raw, locale=locale, fallback_locale=fallback_locale)

    def set_locale(self, locale: str) -> None:
        self.locale = locale

    def lookup(self, key: str) -> Optional[str]:
        for loc in (self.locale, self.fallback_locale):
            text = (self.strings.get(loc) or {}).get(key)
            if text is not None:
                return text
        return None

    def translate(self, key: str, args: Optional[Mapping[str, Any]] = None) -> str:
        text = self.lookup(key)
        if text is None:
            logger.debug("Missing translation", extra={"i18n_key": key, "locale": self.locale})
            text = key
        if args:
            return format_named(text, args)
        return text

    __call__ = translate
