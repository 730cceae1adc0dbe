"""
backend/betoff/routers/ws.py

Purpose:
    Realtime push channel. Viewers connect, then receive `bets:update`,
    `rate:update` and heartbeat `ping` messages. The channel carries no
    initial state: viewers fetch /api/bets and /api/meta once connected.
    Admins can read channel statistics at /api/ws/stats.

Dependencies:
    - betoff.services.auth_service
    - betoff.services.websocket_manager
"""

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from betoff.services.auth_service import require_admin
from betoff.services.websocket_manager import websocket_manager

logger = logging.getLogger("betoff.ws")

router = APIRouter()


@router.get("/api/ws/stats", dependencies=[Depends(require_admin)])
async def websocket_stats():
    """Realtime channel health: viewers, broadcast counters, recent send errors."""
    return websocket_manager.stats()


@router.websocket("/ws")
async def websocket_events(ws: WebSocket):
    if websocket_manager.is_full:
        await ws.close(code=4002, reason="Too many connections")
        return

    try:
        connection_id = await websocket_manager.connect(ws)
    except RuntimeError:
        await ws.close(code=4002, reason="Too many connections")
        return

    try:
        while True:
            data = await ws.receive_text()
            await websocket_manager.touch(connection_id)
            # Client can send "ping" to keep alive
            if data == "ping":
                await ws.send_text("pong")
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.warning("WS connection %s failed", connection_id, exc_info=True)
    finally:
        await websocket_manager.disconnect(connection_id)
