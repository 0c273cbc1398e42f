"""
Application FastAPI : point d'entrée
====================================

Rôle
----
- Instancie l'app FastAPI, configure le CORS pour le front (panneau d'aide),
- Monte les routeurs (REST + WebSocket),
- Précharge l'index de documentation et affiche la configuration au démarrage.

Notes
-----
- Les importations des routeurs sont explicites pour éviter les surprises d’auto-discovery.
- Garder `settings.ALLOWED_ORIGINS` en phase avec les URLs du front.
- ⚠️ Le middleware CORS doit être ajouté AVANT les include_router.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from assistant.routes.advisor import router as advisor_router
from assistant.routes.documents import router as documents_router
from assistant.routes.health import router as health_router
from assistant.routes.websocket import router as ws_router

from assistant.config.settings import settings
from assistant.services.advisor_store import get_document_index

# --- App FastAPI principale  ---
app = FastAPI(title=settings.APP_NAME)

# ===========================
# CORS (dev: permissif)
# ===========================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ===========================
# Montage des routers
# ===========================
app.include_router(advisor_router)
app.include_router(documents_router)
app.include_router(health_router)
app.include_router(ws_router)                  # WebSocket endpoint (/ws)


# --- Racine utile pour "ping" simple (sans /health) ---
@app.get("/")
async def root():
    """Ping basique : permet de vérifier que l'app tourne."""
    return {"ok": True, "service": "ingame-assistant"}


# --- Hook de démarrage ---
@app.on_event("startup")
async def preload_documents():
    """
    Au démarrage:
    - charge l'index de documentation (README + fiches mini-jeux),
    - affiche la config courante (langue, délais, docs) dans la console.
    """
    index = get_document_index()
    print("== Assistant config ==", settings.LOCALE, settings.EVENT_TIMEOUT, settings.AUTO_ACK_DELAY, settings.ERROR_RECOVERY_DELAY)
    print("== Docs ==", len(index.sections()), "sections,", len(index.topics()), "topics")
