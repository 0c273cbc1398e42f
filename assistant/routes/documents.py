"""
Module routes/documents.py
Rôle:
- (Re)charger la documentation de l'assistant (README principal, fiche de mini-jeu).
- Consulter les sections, l'index de mots-clés et les fiches topics.

Robustesse:
- Un fichier absent n'est pas une erreur HTTP : `loaded=False` et l'index garde
  son contenu précédent.
- 404 uniquement pour une fiche topic inconnue.
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from assistant.services.advisor_store import get_document_index
from assistant.services.doc_index import DocumentIndex

router = APIRouter(prefix="/documents", tags=["documents"])


class PrimaryDocPayload(BaseModel):
    path: str


class TopicDocPayload(BaseModel):
    topic_id: str
    path: str


@router.post("/primary")
async def load_primary(payload: PrimaryDocPayload, index: DocumentIndex = Depends(get_document_index)):
    loaded = index.load_primary_document(payload.path)
    return {"ok": True, "loaded": loaded, "sections": list(index.sections().keys())}


@router.post("/topic")
async def load_topic(payload: TopicDocPayload, index: DocumentIndex = Depends(get_document_index)):
    loaded = index.load_topic_document(payload.topic_id, payload.path)
    return {"ok": True, "loaded": loaded, "topics": index.topics()}


@router.get("/sections")
async def list_sections(index: DocumentIndex = Depends(get_document_index)):
    return {"ok": True, "sections": list(index.sections().keys())}


@router.get("/sections/{keyword}")
async def find_section(keyword: str, index: DocumentIndex = Depends(get_document_index)):
    """Première section correspondant au mot-clé (exacte, sinon sous-chaîne); "" sinon."""
    return {"ok": True, "keyword": keyword, "text": index.find_section(keyword)}


@router.get("/keywords")
async def keywords(index: DocumentIndex = Depends(get_document_index)):
    return {"ok": True, "keywords": index.keyword_index()}


@router.get("/topics/{topic_id}")
async def get_topic(topic_id: str, index: DocumentIndex = Depends(get_document_index)):
    topic = index.get_topic(topic_id)
    if topic is None:
        raise HTTPException(status_code=404, detail="Unknown topic")
    return {"ok": True, "topic_id": topic_id, "topic": topic.model_dump()}
