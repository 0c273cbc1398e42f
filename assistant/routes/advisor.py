"""
Routes de l'assistant (file d'événements + acquittement + progression).
- Soumission d'un événement de jeu (réponse immédiate; le texte arrive par WS "advice").
- Acquittement explicite du conseil affiché (bouton "compris" côté UI).
- Lecture de la progression / de l'état, vidage de file et reset.

Le contrôleur est injecté via `Depends(get_controller)` : les tests le remplacent
par une instance pilotée par une horloge virtuelle.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from assistant.models.event import Event
from assistant.services.advisor import AdvisorController
from assistant.services.advisor_store import get_controller

router = APIRouter(prefix="/advisor", tags=["advisor"])


class EventPayload(BaseModel):
    category: str = Field(..., description="tutorial_start | minigame_start | player_error | …")
    level_id: Optional[str] = None
    context_id: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)


@router.post("/events")
async def submit_event(body: EventPayload, controller: AdvisorController = Depends(get_controller)):
    """
    Soumet un événement. Une catégorie inconnue ou des champs requis manquants
    déclenchent la notification d'erreur du contrôleur puis une 400.
    """
    event = Event.from_dict(body.model_dump())
    if not controller.handle_event(event):
        raise HTTPException(status_code=400, detail=f"Invalid event: {event.describe()}")
    return {"ok": True, "status": controller.status()}


@router.post("/ack")
async def acknowledge(controller: AdvisorController = Depends(get_controller)):
    """Acquitte le conseil affiché; `acknowledged=False` si rien n'attendait."""
    acknowledged = controller.acknowledge()
    return {"ok": True, "acknowledged": acknowledged, "status": controller.status()}


@router.get("/progress")
async def progress(controller: AdvisorController = Depends(get_controller)):
    return {"ok": True, "progress": controller.get_progress_state().model_dump()}


@router.get("/status")
async def status(controller: AdvisorController = Depends(get_controller)):
    return {"ok": True, **controller.status()}


@router.post("/queue/clear")
async def clear_queue(controller: AdvisorController = Depends(get_controller)):
    """Vide la file (compteurs conservés)."""
    controller.clear_queue()
    return {"ok": True, "status": controller.status()}


@router.post("/reset")
async def reset(controller: AdvisorController = Depends(get_controller)):
    """Vide la file et remet les compteurs à zéro."""
    controller.reset()
    return {"ok": True, "status": controller.status()}
