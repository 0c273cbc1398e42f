"""
Models / event.py
Rôle:
- Définir l'événement de jeu soumis à l'assistant (tutoriel, mini-jeu, erreur joueur…).
- Porter le contrat de validité par catégorie (`is_valid`) et la (dé)sérialisation.

Notes:
- `category` restreinte à `EventCategory`; une catégorie inconnue devient `UNKNOWN`
  (jamais valide) au lieu de lever une erreur.
- `payload` est libre (clé/valeur); seules les clés requises par catégorie sont vérifiées.
- `timestamp` est posé à la construction (horloge murale, jamais décroissante) puis figé.
- Le modèle est `frozen` : aucun champ n'est réaffecté après construction.
"""
from __future__ import annotations

import time
from enum import Enum
from threading import Lock
from typing import Any, Dict, Optional, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class EventCategory(str, Enum):
    TUTORIAL_START = "tutorial_start"
    MINIGAME_START = "minigame_start"
    PLAYER_ERROR = "player_error"
    PROGRESS_UPDATE = "progress_update"
    ACHIEVEMENT = "achievement"
    NODE_ENTERED = "node_entered"
    HINT_REQUESTED = "hint_requested"
    GAME_COMPLETED = "game_completed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Any) -> "EventCategory":
        """Accepte un membre, `snake_case` ou `kebab-case` (casse libre); sinon UNKNOWN."""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return cls.UNKNOWN
        key = raw.strip().lower().replace("-", "_")
        try:
            return cls(key)
        except ValueError:
            return cls.UNKNOWN


_TS_LOCK = Lock()
_LAST_TS = 0.0


def _next_timestamp() -> float:
    """Horodatage mural, borné pour ne jamais reculer entre deux constructions."""
    global _LAST_TS
    with _TS_LOCK:
        _LAST_TS = max(time.time(), _LAST_TS)
        return _LAST_TS


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


class Event(BaseModel):
    """Événement de jeu (immuable après construction)."""

    model_config = ConfigDict(frozen=True)

    category: EventCategory
    level_id: Optional[str] = None
    context_id: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: float = Field(default_factory=_next_timestamp)

    # -----------------------------
    # Validité
    # -----------------------------
    def is_valid(self) -> bool:
        """Règle de validité par catégorie (fonction pure de category/context_id/payload)."""
        cat = self.category
        if cat in (EventCategory.TUTORIAL_START, EventCategory.ACHIEVEMENT, EventCategory.NODE_ENTERED):
            return _has_text(self.context_id)
        if cat == EventCategory.MINIGAME_START:
            return _has_text(self.context_id) and "game_type" in self.payload
        if cat == EventCategory.PLAYER_ERROR:
            return "error_code" in self.payload
        if cat == EventCategory.PROGRESS_UPDATE:
            return "completion" in self.payload
        if cat in (EventCategory.HINT_REQUESTED, EventCategory.GAME_COMPLETED):
            return True
        return False

    def describe(self) -> str:
        payload = orjson.dumps(self.payload, option=orjson.OPT_SORT_KEYS, default=str).decode("utf-8")
        return (
            f"Event[{self.category.value}] level={self.level_id or '-'} "
            f"context={self.context_id or '-'} payload={payload}"
        )

    # -----------------------------
    # (Dé)sérialisation
    # -----------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "level_id": self.level_id,
            "context_id": self.context_id,
            "payload": dict(self.payload),
            "timestamp": self.timestamp,
        }

    def serialize(self) -> bytes:
        return orjson.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        """Construit un événement depuis un mapping; catégorie inconnue → UNKNOWN."""
        if not isinstance(data, dict):
            return cls(category=EventCategory.UNKNOWN)
        fields: Dict[str, Any] = {
            "category": EventCategory.parse(data.get("category")),
            "level_id": data.get("level_id"),
            "context_id": data.get("context_id"),
            "payload": data.get("payload") or {},
        }
        if data.get("timestamp") is not None:
            fields["timestamp"] = data["timestamp"]
        try:
            return cls(**fields)
        except ValidationError:
            return cls(category=EventCategory.UNKNOWN)

    @classmethod
    def deserialize(cls, data: Union[bytes, str, Dict[str, Any]]) -> "Event":
        if isinstance(data, dict):
            return cls.from_dict(data)
        try:
            raw = orjson.loads(data)
        except (orjson.JSONDecodeError, TypeError):
            return cls(category=EventCategory.UNKNOWN)
        return cls.from_dict(raw)

    # -----------------------------
    # Constructeurs par catégorie
    # -----------------------------
    @classmethod
    def tutorial_start(cls, context_id: str, level_id: Optional[str] = None) -> "Event":
        return cls(category=EventCategory.TUTORIAL_START, context_id=context_id, level_id=level_id)

    @classmethod
    def minigame_start(cls, game_type: str, context_id: Optional[str] = None, level_id: Optional[str] = None) -> "Event":
        return cls(
            category=EventCategory.MINIGAME_START,
            context_id=context_id or game_type,
            level_id=level_id,
            payload={"game_type": game_type},
        )

    @classmethod
    def player_error(cls, error_code: str, attempt: int = 1, level_id: Optional[str] = None) -> "Event":
        return cls(
            category=EventCategory.PLAYER_ERROR,
            level_id=level_id,
            payload={"error_code": error_code, "attempt": attempt},
        )

    @classmethod
    def progress_update(cls, completion: float, level_id: Optional[str] = None) -> "Event":
        return cls(category=EventCategory.PROGRESS_UPDATE, level_id=level_id, payload={"completion": completion})

    @classmethod
    def achievement(cls, name: str, level_id: Optional[str] = None) -> "Event":
        return cls(category=EventCategory.ACHIEVEMENT, context_id=name, level_id=level_id)

    @classmethod
    def node_entered(cls, node_id: str, level_id: Optional[str] = None) -> "Event":
        return cls(category=EventCategory.NODE_ENTERED, context_id=node_id, level_id=level_id)

    @classmethod
    def hint_requested(cls, level_id: Optional[str] = None, context_id: Optional[str] = None) -> "Event":
        return cls(category=EventCategory.HINT_REQUESTED, level_id=level_id, context_id=context_id)

    @classmethod
    def game_completed(cls, level_id: Optional[str] = None) -> "Event":
        return cls(category=EventCategory.GAME_COMPLETED, level_id=level_id)
