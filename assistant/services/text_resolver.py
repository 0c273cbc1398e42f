"""
Service: text_resolver.py
Rôle:
- Produire le texte de conseil à afficher pour un événement.
- Une règle par catégorie calcule un "contexte", puis un gabarit par catégorie
  reçoit `context`, `level` (= level_id) et `area` (= context_id).

Règles de contenu:
- Aucun texte en dur : uniquement des clés de traduction (`ADVISOR_*`), de la
  troncature (200 car. pour le tutoriel, 150 pour les astuces) et du formatage.
- Les sections de doc proviennent du `DocumentIndex` (catégories `controls`, `tips`).
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional

from assistant.models.event import Event, EventCategory
from .doc_index import DocumentIndex
from .localization import Translator, format_named

TUTORIAL_EXCERPT_CHARS = 200
HINT_EXCERPT_CHARS = 150

KEY_INVALID_EVENT = "ADVISOR_INVALID_EVENT"
KEY_TUTORIAL_START = "ADVISOR_TUTORIAL_START"
KEY_TUTORIAL_GENERIC = "ADVISOR_TUTORIAL_GENERIC"
KEY_MINIGAME_START = "ADVISOR_MINIGAME_START"
KEY_MINIGAME_GENERIC = "ADVISOR_MINIGAME_GENERIC"
KEY_ERROR_GENERIC = "ADVISOR_ERROR_GENERIC"
KEY_HINT_SUGGESTION = "ADVISOR_HINT_SUGGESTION"
KEY_PROGRESS_HIGH = "ADVISOR_PROGRESS_HIGH"
KEY_PROGRESS_MID = "ADVISOR_PROGRESS_MID"
KEY_PROGRESS_LOW = "ADVISOR_PROGRESS_LOW"
KEY_ACHIEVEMENT = "ADVISOR_ACHIEVEMENT"
KEY_NODE_ENTERED = "ADVISOR_NODE_ENTERED"
KEY_HINT_GENERIC = "ADVISOR_HINT_GENERIC"
KEY_GAME_COMPLETED = "ADVISOR_GAME_COMPLETED"

# Table fermée code d'erreur → clé
ERROR_MESSAGES: Dict[str, str] = {
    "wrong_answer": "ADVISOR_ERROR_WRONG_ANSWER",
    "timeout": "ADVISOR_ERROR_TIMEOUT",
    "invalid_input": "ADVISOR_ERROR_INVALID_INPUT",
}

PROGRESS_HIGH = 0.75
PROGRESS_MID = 0.5

# Gabarits par catégorie (placeholders: context, level, area)
DEFAULT_TEMPLATES: Dict[EventCategory, str] = {
    EventCategory.TUTORIAL_START: "{context}",
    EventCategory.MINIGAME_START: "{context}",
    EventCategory.PLAYER_ERROR: "{context}",
    EventCategory.PROGRESS_UPDATE: "{context}",
    EventCategory.ACHIEVEMENT: "{context}",
    EventCategory.NODE_ENTERED: "{context}",
    EventCategory.HINT_REQUESTED: "{context}",
    EventCategory.GAME_COMPLETED: "{context}",
}


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class TextResolver:
    def __init__(
        self,
        index: Optional[DocumentIndex] = None,
        translator: Optional[Translator] = None,
        templates: Optional[Mapping[EventCategory, str]] = None,
    ) -> None:
        self.index = index or DocumentIndex()
        self.translator = translator or Translator()
        self.templates: Dict[EventCategory, str] = dict(DEFAULT_TEMPLATES)
        if templates:
            self.templates.update(templates)
        self._rules: Dict[EventCategory, Callable[[Event, DocumentIndex], str]] = {
            EventCategory.TUTORIAL_START: self._tutorial_start,
            EventCategory.MINIGAME_START: self._minigame_start,
            EventCategory.PLAYER_ERROR: self._player_error,
            EventCategory.PROGRESS_UPDATE: self._progress_update,
            EventCategory.ACHIEVEMENT: self._achievement,
            EventCategory.NODE_ENTERED: self._node_entered,
            EventCategory.HINT_REQUESTED: self._hint_requested,
            EventCategory.GAME_COMPLETED: self._game_completed,
        }

    def tr(self, key: str, **args: Any) -> str:
        return self.translator.translate(key, args or None)

    def resolve_text(self, event: Optional[Event], index: Optional[DocumentIndex] = None) -> str:
        if event is None or not event.is_valid():
            return self.tr(KEY_INVALID_EVENT)
        rule = self._rules.get(event.category)
        if rule is None:
            return self.tr(KEY_INVALID_EVENT)
        context = rule(event, index or self.index)
        template = self.templates.get(event.category, "{context}")
        return format_named(template, {
            "context": context,
            "level": event.level_id or "",
            "area": event.context_id or "",
        })

    # ---------------- règles par catégorie ----------------
    def _tutorial_start(self, event: Event, index: DocumentIndex) -> str:
        section = index.keyword_section("controls")
        if section:
            return self.tr(KEY_TUTORIAL_START) + "\n\n" + section[:TUTORIAL_EXCERPT_CHARS]
        return self.tr(KEY_TUTORIAL_GENERIC)

    def _minigame_start(self, event: Event, index: DocumentIndex) -> str:
        game = str(event.payload.get("game_type", ""))
        topic = index.get_topic(game)
        if topic is not None:
            return self.tr(KEY_MINIGAME_START, game=game, objective=topic.objective)
        return self.tr(KEY_MINIGAME_GENERIC, game=game)

    def _player_error(self, event: Event, index: DocumentIndex) -> str:
        code = str(event.payload.get("error_code", "unknown"))
        attempt = _as_int(event.payload.get("attempt", 1), 1)
        text = self.tr(ERROR_MESSAGES.get(code, KEY_ERROR_GENERIC))
        if attempt > 2:
            text += "\n" + self.tr(KEY_HINT_SUGGESTION)
        return text

    def _progress_update(self, event: Event, index: DocumentIndex) -> str:
        completion = _as_float(event.payload.get("completion", 0.0), 0.0)
        if completion >= PROGRESS_HIGH:
            return self.tr(KEY_PROGRESS_HIGH)
        if completion >= PROGRESS_MID:
            return self.tr(KEY_PROGRESS_MID)
        return self.tr(KEY_PROGRESS_LOW)

    def _achievement(self, event: Event, index: DocumentIndex) -> str:
        return self.tr(KEY_ACHIEVEMENT, name=event.context_id)

    def _node_entered(self, event: Event, index: DocumentIndex) -> str:
        return self.tr(KEY_NODE_ENTERED, node=event.context_id)

    def _hint_requested(self, event: Event, index: DocumentIndex) -> str:
        section = index.keyword_section("tips")
        if section:
            return section[:HINT_EXCERPT_CHARS]
        return self.tr(KEY_HINT_GENERIC)

    def _game_completed(self, event: Event, index: DocumentIndex) -> str:
        return self.tr(KEY_GAME_COMPLETED)
