"""
backend/betoff/client/sync.py

Purpose:
    Live state synchronizer for one viewer. Mirrors the server's bet
    collection from an initial fetch plus the `bets:update` push stream,
    tracks the exchange rate, and keeps a persisted last-updated marker.

    States:
        DISCONNECTED -> CONNECTING -> SYNCED -> DISCONNECTED (retry forever)

    Push payloads are decoded at the boundary into one of:
        FullReplace               bare list; marker re-fetched from /api/meta
        FullReplaceWithTimestamp  {"items": [...], "updatedAt": ms}
        UnknownPayload            anything else; marker := now, data untouched

    Every snapshot replaces the cache wholesale, so applying the same
    notification twice is a no-op the second time.

Dependencies:
    - websockets
    - betoff.client.api
    - betoff.client.state
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncContextManager, AsyncIterable, Callable, Optional, Union

import websockets
from websockets.exceptions import WebSocketException

from betoff.client.api import BetoffClient
from betoff.client.state import LAST_UPDATE_KEY, ClientStateFile
from betoff.errors import BetoffError
from betoff.services.money import sanitize_rate
from betoff.utils import now_ms

logger = logging.getLogger("betoff.client.sync")

BETS_UPDATE_EVENT = "bets:update"
RATE_UPDATE_EVENT = "rate:update"

Connector = Callable[[str], AsyncContextManager[AsyncIterable[Union[str, bytes]]]]
Listener = Callable[["LiveBetsSync"], None]


class SyncState(str, Enum):
    disconnected = "DISCONNECTED"
    connecting = "CONNECTING"
    synced = "SYNCED"


@dataclass(frozen=True)
class FullReplace:
    items: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class FullReplaceWithTimestamp:
    items: list[dict[str, Any]]
    updated_at: int


@dataclass(frozen=True)
class UnknownPayload:
    pass


PushPayload = Union[FullReplace, FullReplaceWithTimestamp, UnknownPayload]


def _records(items: list[Any]) -> list[dict[str, Any]]:
    return [copy.deepcopy(item) for item in items if isinstance(item, dict)]


def decode_bets_update(payload: Any, *, now: Optional[int] = None) -> PushPayload:
    if isinstance(payload, list):
        return FullReplace(items=_records(payload))
    if isinstance(payload, dict) and isinstance(payload.get("items"), list):
        try:
            updated_at = int(payload.get("updatedAt") or 0)
        except (TypeError, ValueError):
            updated_at = 0
        return FullReplaceWithTimestamp(
            items=_records(payload["items"]),
            updated_at=updated_at or (now if now is not None else now_ms()),
        )
    return UnknownPayload()


def _default_connector(url: str):
    return websockets.connect(url, open_timeout=10)


class LiveBetsSync:
    def __init__(
        self,
        api: BetoffClient,
        *,
        state_file: Optional[ClientStateFile] = None,
        connector: Optional[Connector] = None,
        reconnect_min_seconds: float = 1.0,
        reconnect_max_seconds: float = 30.0,
    ) -> None:
        self._api = api
        self._state_file = state_file or ClientStateFile()
        self._connector = connector or _default_connector
        self._reconnect_min = max(0.0, reconnect_min_seconds)
        self._reconnect_max = max(self._reconnect_min, reconnect_max_seconds)

        self.state = SyncState.disconnected
        self.bets: list[dict[str, Any]] = []
        self.rate: float = sanitize_rate(None)
        # Known before the first response arrives
        self.last_updated_ms: int = self._state_file.last_update_ms()
        # Highest marker received from the server in this session
        self._server_marker = 0

        self._tentative_removals: set[str] = set()
        self._listeners: list[Listener] = []
        self._bets_loaded = False
        self._stopping = False

    # ---------- observation ----------

    @property
    def connected(self) -> bool:
        return self.state is SyncState.synced

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Sync listener failed")

    def _set_state(self, state: SyncState) -> None:
        if state is not self.state:
            logger.info("Sync state %s -> %s", self.state.value, state.value)
            self.state = state
            self._notify()

    def visible_bets(self) -> list[dict[str, Any]]:
        """Cached collection minus rows removed optimistically."""
        if not self._tentative_removals:
            return list(self.bets)
        return [bet for bet in self.bets if str(bet.get("id")) not in self._tentative_removals]

    # ---------- local state transitions ----------

    def _replace_bets(self, items: list[dict[str, Any]]) -> None:
        self.bets = items
        self._bets_loaded = True
        self._tentative_removals.clear()

    def _adopt_marker(self, updated_at: int) -> None:
        """Server markers only move forward; the persisted value is not a baseline."""
        if updated_at <= self._server_marker:
            return
        self._server_marker = updated_at
        self._store_marker(updated_at)

    def _store_marker(self, updated_at: int) -> None:
        self.last_updated_ms = updated_at
        self._state_file.set(LAST_UPDATE_KEY, updated_at)

    def remove_tentatively(self, bet_id: str) -> None:
        """Hide a row until the next authoritative snapshot supersedes it."""
        self._tentative_removals.add(str(bet_id))
        self._notify()

    def apply_rate_update(self, payload: Any) -> bool:
        """Adopt a pushed rate; invalid values are ignored."""
        value = payload.get("rubPerUsdt") if isinstance(payload, dict) else None
        if value is None or isinstance(value, bool):
            return False
        try:
            rate = float(value)
        except (TypeError, ValueError):
            return False
        if not math.isfinite(rate) or rate <= 0:
            return False
        if rate == self.rate:
            return False
        self.rate = rate
        self._notify()
        return True

    async def apply_bets_update(self, payload: Any) -> PushPayload:
        decoded = decode_bets_update(payload)
        if isinstance(decoded, FullReplaceWithTimestamp):
            self._replace_bets(decoded.items)
            self._adopt_marker(decoded.updated_at)
        elif isinstance(decoded, FullReplace):
            self._replace_bets(decoded.items)
            await self.refresh_marker()
        else:
            # Local clock; never compared with server markers
            self._store_marker(now_ms())
        self._notify()
        return decoded

    async def refresh_marker(self) -> None:
        updated_at = await self._api.fetch_meta()
        if updated_at:
            self._adopt_marker(updated_at)

    async def initial_fetch(self) -> None:
        """Bets, marker and rate in parallel; each result applies on arrival."""

        async def _load_bets() -> None:
            self._replace_bets(await self._api.fetch_bets())
            self._notify()

        async def _load_marker() -> None:
            await self.refresh_marker()
            self._notify()

        async def _load_rate() -> None:
            self.rate = await self._api.fetch_rate()
            self._notify()

        results = await asyncio.gather(_load_bets(), _load_marker(), _load_rate(), return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                logger.warning("Initial fetch incomplete: %s", result)

    async def handle_message(self, raw: Union[str, bytes, dict]) -> None:
        if isinstance(raw, (str, bytes)):
            try:
                message = json.loads(raw)
            except ValueError:
                logger.debug("Ignoring non-JSON push message: %r", raw[:80])
                return
        else:
            message = raw
        if not isinstance(message, dict):
            return

        event_type = message.get("type")
        if event_type == BETS_UPDATE_EVENT:
            await self.apply_bets_update(message.get("data"))
        elif event_type == RATE_UPDATE_EVENT:
            self.apply_rate_update(message.get("data"))

    # ---------- transport loop ----------

    async def run(self) -> None:
        """Connect, sync and follow the push stream until stop() is called."""
        self._stopping = False
        delay = self._reconnect_min
        while not self._stopping:
            self._set_state(SyncState.connecting)
            try:
                async with self._connector(self._api.websocket_url) as stream:
                    self._set_state(SyncState.synced)
                    delay = self._reconnect_min
                    if not self._bets_loaded:
                        await self.initial_fetch()
                    async for raw in stream:
                        await self.handle_message(raw)
                        if self._stopping:
                            break
            except asyncio.CancelledError:
                self._set_state(SyncState.disconnected)
                raise
            except (OSError, WebSocketException, BetoffError, asyncio.TimeoutError) as exc:
                logger.warning("Push channel unavailable: %s", exc)
            self._set_state(SyncState.disconnected)
            if self._stopping:
                break
            await asyncio.sleep(delay)
            delay = min(self._reconnect_max, max(delay * 2, 0.1))

    def stop(self) -> None:
        """Ask run() to return after the current message or retry wait."""
        self._stopping = True
