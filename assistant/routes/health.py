"""
Module routes/health.py
Rôle:
- Endpoint de santé (service OK + docs chargées + état du contrôleur).
"""
from fastapi import APIRouter, Depends

from assistant.config.settings import settings
from assistant.services.advisor import AdvisorController
from assistant.services.advisor_store import get_controller, get_document_index
from assistant.services.doc_index import DocumentIndex
from assistant.services.ws_manager import WS

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health(
    index: DocumentIndex = Depends(get_document_index),
    controller: AdvisorController = Depends(get_controller),
):
    """Renvoie un OK minimal avec le nom de service et un aperçu de l'index."""
    return {
        "ok": True,
        "service": settings.APP_NAME,
        "locale": settings.LOCALE,
        "sections": len(index.sections()),
        "topics": index.topics(),
        "advisor_state": controller.state.value,
        "ws": WS.stats(),
    }
