"""
backend/betoff/services/websocket_manager.py

Purpose:
    Process-local WebSocket connection manager for the realtime dashboard
    channel. Tracks viewer connections, keeps them alive with a heartbeat,
    and broadcasts every snapshot/rate change to all of them. Delivery is
    best-effort: a failing socket is dropped, nothing is replayed.

Dependencies:
    - fastapi.WebSocket
    - betoff.config
    - betoff.utils
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from fastapi import WebSocket

from betoff.config import settings
from betoff.utils import utcnow

logger = logging.getLogger("betoff.websocket_manager")


@dataclass
class ManagedConnection:
    connection_id: str
    websocket: WebSocket
    connected_at: datetime
    last_seen_at: datetime


class WebSocketManager:
    def __init__(
        self,
        *,
        max_connections: int,
        heartbeat_seconds: int,
    ) -> None:
        self._max_connections = max(1, int(max_connections))
        self._heartbeat_seconds = max(1, int(heartbeat_seconds))
        self._connections: dict[str, ManagedConnection] = {}
        self._lock = asyncio.Lock()
        self._heartbeat_task: asyncio.Task | None = None
        self._running = False
        self._broadcast_total = 0
        self._send_failures = 0
        self._dropped_connections = 0
        self._last_errors: list[dict[str, Any]] = []

    @property
    def is_full(self) -> bool:
        return len(self._connections) >= self._max_connections

    async def start(self) -> None:
        async with self._lock:
            if self._running:
                return
            self._running = True
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop(), name="ws_heartbeat")
            logger.info("WebSocket manager started")

    async def stop(self) -> None:
        async with self._lock:
            if not self._running:
                return
            self._running = False
            if self._heartbeat_task is not None:
                self._heartbeat_task.cancel()
                try:
                    await self._heartbeat_task
                except asyncio.CancelledError:
                    pass
                self._heartbeat_task = None
            self._connections.clear()
            logger.info("WebSocket manager stopped")

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        async with self._lock:
            if len(self._connections) >= self._max_connections:
                raise RuntimeError("max_connections_exceeded")
            connection_id = str(uuid.uuid4())
            now = utcnow()
            self._connections[connection_id] = ManagedConnection(
                connection_id=connection_id,
                websocket=websocket,
                connected_at=now,
                last_seen_at=now,
            )
        logger.info("WS viewer connected (%d total)", len(self._connections))
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        async with self._lock:
            removed = self._connections.pop(connection_id, None)
        if removed is not None:
            logger.info("WS viewer disconnected (%d remaining)", len(self._connections))

    async def touch(self, connection_id: str) -> None:
        async with self._lock:
            conn = self._connections.get(connection_id)
            if conn:
                conn.last_seen_at = utcnow()

    async def broadcast(self, event_type: str, data: Any) -> int:
        message = {"type": str(event_type), "data": data}

        async with self._lock:
            connections = list(self._connections.values())

        delivered = 0
        dead_ids: list[str] = []
        for conn in connections:
            try:
                await conn.websocket.send_json(message)
                delivered += 1
            except Exception as exc:
                dead_ids.append(conn.connection_id)
                self._record_failure(conn.connection_id, str(event_type), exc)

        for conn_id in dead_ids:
            await self.disconnect(conn_id)
            self._dropped_connections += 1

        self._broadcast_total += 1
        logger.debug("Broadcast %s delivered to %d viewers", event_type, delivered)
        return delivered

    def stats(self) -> dict[str, Any]:
        now = utcnow()
        return {
            "running": self._running,
            "active_connections": len(self._connections),
            "connections": [
                {
                    "connection_id": conn.connection_id,
                    "connected_seconds": int((now - conn.connected_at).total_seconds()),
                    "idle_seconds": int((now - conn.last_seen_at).total_seconds()),
                }
                for conn in self._connections.values()
            ],
            "max_connections": self._max_connections,
            "heartbeat_seconds": self._heartbeat_seconds,
            "broadcast_total": self._broadcast_total,
            "send_failures": self._send_failures,
            "dropped_connections": self._dropped_connections,
            "last_errors": list(self._last_errors),
        }

    async def _heartbeat_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._heartbeat_seconds)
            async with self._lock:
                connections = list(self._connections.values())
            dead_ids: list[str] = []
            for conn in connections:
                try:
                    await conn.websocket.send_json({"type": "ping", "data": {"ts": utcnow().isoformat()}})
                except Exception:
                    dead_ids.append(conn.connection_id)
            for conn_id in dead_ids:
                await self.disconnect(conn_id)
                self._dropped_connections += 1

    def _record_failure(self, connection_id: str, event_type: str, exc: Exception) -> None:
        self._send_failures += 1
        self._last_errors.append(
            {
                "ts": utcnow().isoformat(),
                "connection_id": connection_id,
                "event_type": event_type,
                "error": str(exc),
            }
        )
        if len(self._last_errors) > 200:
            self._last_errors = self._last_errors[-200:]


websocket_manager = WebSocketManager(
    max_connections=settings.WS_MAX_CONNECTIONS,
    heartbeat_seconds=settings.WS_HEARTBEAT_SECONDS,
)
