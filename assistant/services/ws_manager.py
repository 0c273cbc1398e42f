# assistant/services/ws_manager.py
"""
Service: ws_manager.py
- Registre des sockets UI abonnées aux notifications de l'assistant.
- Snapshots immuables pour éviter "set changed size during iteration".
- Helpers sync pour envois typés (appelés depuis les callbacks du contrôleur).
- Admin: stats().
"""
from __future__ import annotations
from typing import Set, Any
from dataclasses import dataclass, field
from threading import RLock
import json
import logging
from starlette.websockets import WebSocket

logger = logging.getLogger(__name__)


@dataclass
class WSManager:
    _lock: RLock = field(default_factory=RLock, init=False, repr=False)
    clients: Set[WebSocket] = field(default_factory=set)

    async def connect(self, ws: WebSocket) -> None:
        """Accepte la connexion WS et l'ajoute aux abonnés."""
        await ws.accept()
        with self._lock:
            self.clients.add(ws)

    def _unlink(self, ws: WebSocket) -> None:
        with self._lock:
            self.clients.discard(ws)

    async def disconnect(self, ws: WebSocket) -> None:
        """Ferme proprement la connexion et nettoie le registre."""
        self._unlink(ws)
        try:
            await ws.close()
        except Exception:
            pass

    async def _send_json_one(self, ws: WebSocket, payload: Any) -> bool:
        """Envoie à un WS; renvoie True si succès, sinon False (et retire le WS mort)."""
        try:
            data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
            await ws.send_text(data)
            return True
        except Exception:
            self._unlink(ws)
            return False

    async def send_json(self, ws: WebSocket, payload: Any) -> bool:
        return await self._send_json_one(ws, payload)

    def _snapshot(self) -> list[WebSocket]:
        with self._lock:
            return list(self.clients)

    async def broadcast(self, payload: Any) -> int:
        conns = self._snapshot()
        success = 0
        for ws in conns:
            if await self._send_json_one(ws, payload):
                success += 1
        logger.debug("WS broadcast", extra={"ws_success": success, "ws_total": len(conns)})
        return success

    async def broadcast_type(self, event_type: str, payload: Any) -> int:
        return await self.broadcast({"type": event_type, "payload": payload})

    def stats(self) -> dict:
        with self._lock:
            return {"clients_total": len(self.clients)}


WS = WSManager()

# =====================================================
# WRAPPERS THREAD-SAFE (utilisables depuis du code sync)
# =====================================================

def _run_async(coro):
    """
    Exécute une coroutine depuis un contexte potentiellement synchrone.
    - Essaie anyio.from_thread.run si on est dans un worker anyio (run_in_threadpool).
    - Sinon, utilise la loop courante si elle tourne, ou crée une loop.
    - Enveloppe la coroutine pour éviter 'cannot reuse already awaited coroutine'.
    """
    import anyio as _anyio
    import asyncio as _asyncio

    async def _runner():
        return await coro  # évite 'cannot reuse already awaited coroutine'

    try:
        # cas FastAPI sync -> anyio.to_thread.run_sync(...): on est dans un thread anyio
        return _anyio.from_thread.run(_runner)
    except RuntimeError:
        # pas de worker anyio -> on tente la loop actuelle, sinon on en crée une
        try:
            loop = _asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop and loop.is_running():
            loop.create_task(_runner())  # fire-and-forget
            return None
        else:
            return _asyncio.run(_runner())


def ws_broadcast_type_safe(event_type: str, payload: dict):
    """Wrapper synchrone: broadcast typé à tous les abonnés."""
    if not WS.clients:
        return None
    _run_async(WS.broadcast_type(event_type, payload))
