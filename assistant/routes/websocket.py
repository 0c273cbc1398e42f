# assistant/routes/websocket.py
"""
WebSocket endpoint.

- /ws : canal UI. Reçoit les notifications de l'assistant
  ({"type": "advice"|"state"|"error"|"complete", "payload": {...}}).
  Messages acceptés : {"type":"ping"} → pong, {"type":"ack"} → acquittement du
  conseil affiché, autres → ACK générique.
"""
from __future__ import annotations

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from assistant.services.advisor_store import get_controller
from assistant.services.ws_manager import WS

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await WS.connect(ws)
    controller = get_controller()
    try:
        await WS.send_json(ws, {"type": "status", "payload": controller.status()})
        while True:
            raw = await ws.receive_text()
            try:
                msg = json.loads(raw)
            except Exception:
                # Message non JSON -> ignore
                continue

            mtype = msg.get("type") if isinstance(msg, dict) else None
            if mtype == "ping":
                await WS.send_json(ws, {"type": "pong"})
            elif mtype == "ack":
                acknowledged = controller.acknowledge()
                await WS.send_json(ws, {"type": "ack", "acknowledged": acknowledged})
            else:
                await WS.send_json(ws, {"type": "ack", "received": msg})
    except WebSocketDisconnect:
        pass
    finally:
        await WS.disconnect(ws)
