"""
Advisor store registry
======================

Instances par défaut (optionnelles) partagées par le backend :
- `get_document_index()` : index chargé depuis `PRIMARY_DOC_PATH` + `TOPICS_DIR`,
- `get_translator()` : textes `STRINGS_PATH` pour `LOCALE`,
- `get_controller()` : contrôleur branché sur asyncio, notifications relayées en WS.

Les instances sont créées à la demande (lazy) et peuvent être remplacées dans les
tests via `app.dependency_overrides`.
"""
from __future__ import annotations

from pathlib import Path
from threading import RLock
from typing import Optional

from assistant.config.settings import settings
from .advisor import (
    AdvisorController,
    AdvisorState,
    SIGNAL_ERROR_OCCURRED,
    SIGNAL_PROCESSING_COMPLETE,
    SIGNAL_READY_TO_DISPLAY,
    SIGNAL_STATE_CHANGED,
)
from .doc_index import DocumentIndex
from .localization import Translator
from .scheduler import AsyncioScheduler
from .text_resolver import TextResolver
from .ws_manager import ws_broadcast_type_safe

_LOCK = RLock()
_INDEX: Optional[DocumentIndex] = None
_TRANSLATOR: Optional[Translator] = None
_CONTROLLER: Optional[AdvisorController] = None


def get_document_index() -> DocumentIndex:
    """Retourne l'index partagé (chargé au premier appel; docs manquantes tolérées)."""
    global _INDEX
    with _LOCK:
        if _INDEX is None:
            index = DocumentIndex()
            index.load_primary_document(settings.PRIMARY_DOC_PATH)
            index.load_topic_directory(settings.TOPICS_DIR)
            _INDEX = index
        return _INDEX


def get_translator() -> Translator:
    global _TRANSLATOR
    with _LOCK:
        if _TRANSLATOR is None:
            _TRANSLATOR = Translator.from_file(
                Path(settings.STRINGS_PATH),
                locale=settings.LOCALE,
                fallback_locale=settings.FALLBACK_LOCALE,
            )
        return _TRANSLATOR


def wire_ws_notifications(controller: AdvisorController) -> None:
    """Relaye les quatre notifications du contrôleur vers les clients WebSocket."""

    def _on_ready(text: str) -> None:
        ws_broadcast_type_safe("advice", {"text": text})

    def _on_state(old: AdvisorState, new: AdvisorState) -> None:
        ws_broadcast_type_safe("state", {"from": old.value, "to": new.value})

    def _on_error(message: str) -> None:
        ws_broadcast_type_safe("error", {"message": message})

    def _on_complete() -> None:
        ws_broadcast_type_safe("complete", {})

    controller.connect(SIGNAL_READY_TO_DISPLAY, _on_ready)
    controller.connect(SIGNAL_STATE_CHANGED, _on_state)
    controller.connect(SIGNAL_ERROR_OCCURRED, _on_error)
    controller.connect(SIGNAL_PROCESSING_COMPLETE, _on_complete)


def build_controller(index: DocumentIndex, translator: Translator) -> AdvisorController:
    resolver = TextResolver(index=index, translator=translator)
    return AdvisorController(
        resolver,
        AsyncioScheduler(),
        event_timeout=settings.EVENT_TIMEOUT,
        auto_ack_delay=settings.AUTO_ACK_DELAY,
        error_recovery_delay=settings.ERROR_RECOVERY_DELAY,
    )


def get_controller() -> AdvisorController:
    global _CONTROLLER
    with _LOCK:
        if _CONTROLLER is None:
            controller = build_controller(get_document_index(), get_translator())
            wire_ws_notifications(controller)
            _CONTROLLER = controller
        return _CONTROLLER

