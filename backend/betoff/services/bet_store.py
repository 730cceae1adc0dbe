"""
backend/betoff/services/bet_store.py

Purpose:
    Owner of the authoritative, ordered bet collection. Every mutation runs
    under one lock and performs, in order:
        1. build the new list from the current one
        2. persist the snapshot and an insert-only backup copy
        3. swap it into memory and advance the last-updated marker
        4. publish the new snapshot to realtime subscribers
    A failed write in step 2 leaves memory untouched and publishes nothing.

Dependencies:
    - betoff.database
    - betoff.services.websocket_manager
"""

from __future__ import annotations

import asyncio
import copy
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

import betoff.database as _db
from betoff.errors import InvalidArgument, NotFound
from betoff.services.websocket_manager import websocket_manager
from betoff.services.windows import today_dmy
from betoff.utils import backup_stamp, now_ms, utcnow

logger = logging.getLogger("betoff.bet_store")

SNAPSHOT_ID = "bets"
BETS_UPDATE_EVENT = "bets:update"

Publisher = Callable[[str, dict[str, Any]], Awaitable[Any]]


def _assign_added_date(record: dict[str, Any], today: str) -> None:
    if not str(record.get("added_date") or "").strip():
        record["added_date"] = today


class BetStore:
    def __init__(self, *, publish: Optional[Publisher] = None) -> None:
        self._items: list[dict[str, Any]] = []
        self._updated_at_ms = 0
        self._lock = asyncio.Lock()
        self._publish = publish

    @property
    def updated_at_ms(self) -> int:
        return self._updated_at_ms

    def items(self) -> list[dict[str, Any]]:
        """Deep copy of the collection, newest first."""
        return copy.deepcopy(self._items)

    def snapshot_payload(self) -> dict[str, Any]:
        return {"items": self.items(), "updatedAt": self._updated_at_ms}

    async def load(self) -> int:
        doc = await _db.db.bets.find_one({"_id": SNAPSHOT_ID})
        async with self._lock:
            if doc:
                items = doc.get("items")
                self._items = [dict(item) for item in items if isinstance(item, dict)] if isinstance(items, list) else []
                self._updated_at_ms = int(doc.get("updated_at_ms") or 0)
            else:
                self._items = []
                self._updated_at_ms = 0
        logger.info("Bet snapshot loaded: %d items, updated_at_ms=%d", len(self._items), self._updated_at_ms)
        return len(self._items)

    # ---------- mutations ----------

    async def replace_all(self, items: Any, *, now: Optional[datetime] = None) -> int:
        if not isinstance(items, list):
            raise InvalidArgument("array required")
        if not all(isinstance(item, dict) for item in items):
            raise InvalidArgument("array of objects required")

        today = today_dmy(now)
        new_items: list[dict[str, Any]] = []
        seen: set[str] = set()
        explicit = {str(item["id"]) for item in items if item.get("id")}
        for item in items:
            record = copy.deepcopy(item)
            if not record.get("id"):
                record["id"] = self._new_id(explicit | seen)
            record["id"] = str(record["id"])
            if record["id"] in seen:
                raise InvalidArgument(f"duplicate id: {record['id']}")
            seen.add(record["id"])
            _assign_added_date(record, today)
            new_items.append(record)

        async with self._lock:
            await self._commit(new_items, action="replace")
        return len(new_items)

    async def add(self, record: Any, *, now: Optional[datetime] = None) -> str:
        if not isinstance(record, dict):
            raise InvalidArgument("object required")
        record = copy.deepcopy(record)
        async with self._lock:
            existing = {str(item.get("id")) for item in self._items}
            if record.get("id"):
                record["id"] = str(record["id"])
                if record["id"] in existing:
                    raise InvalidArgument(f"duplicate id: {record['id']}")
            else:
                record["id"] = self._new_id(existing)
            _assign_added_date(record, today_dmy(now))
            await self._commit([record, *self._items], action="add", bet_id=record["id"])
        return record["id"]

    async def patch(self, bet_id: str, fields: Any, *, now: Optional[datetime] = None) -> dict[str, Any]:
        """Shallow merge of `fields` into the record; no derived fields are recomputed."""
        if not isinstance(fields, dict):
            raise InvalidArgument("object required")
        return await self.patch_with(bet_id, lambda _current: fields, now=now)

    async def patch_with(
        self,
        bet_id: str,
        build_patch: Callable[[dict[str, Any]], dict[str, Any]],
        *,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """Patch built from the current record while the lock is held."""
        bet_id = str(bet_id)
        async with self._lock:
            idx = self._index_of(bet_id)
            current = self._items[idx]
            fields = build_patch(copy.deepcopy(current))
            merged = {**current, **copy.deepcopy(fields)}
            merged["id"] = str(merged.get("id") or bet_id)
            if merged["id"] != bet_id and self._index_of(merged["id"], missing_ok=True) is not None:
                raise InvalidArgument(f"duplicate id: {merged['id']}")
            _assign_added_date(merged, today_dmy(now))
            new_items = list(self._items)
            new_items[idx] = merged
            await self._commit(new_items, action="patch", bet_id=bet_id)
        return copy.deepcopy(merged)

    async def prepend_many(self, records: list[dict[str, Any]], *, now: Optional[datetime] = None) -> list[str]:
        """Put `records` (in the given order) in front of the collection.

        Records without an id, or whose id is already taken, get a fresh one.
        """
        today = today_dmy(now)
        async with self._lock:
            taken = {str(item.get("id")) for item in self._items}
            fresh: list[dict[str, Any]] = []
            for record in records:
                record = copy.deepcopy(record)
                record_id = str(record.get("id") or "")
                if not record_id or record_id in taken:
                    if record_id:
                        logger.warning("Imported bet id %s already taken, assigning a new one", record_id)
                    record_id = self._new_id(taken)
                record["id"] = record_id
                taken.add(record_id)
                _assign_added_date(record, today)
                fresh.append(record)
            await self._commit([*fresh, *self._items], action="import")
        return [record["id"] for record in fresh]

    async def delete(self, bet_id: str) -> None:
        bet_id = str(bet_id)
        async with self._lock:
            idx = self._index_of(bet_id)
            new_items = self._items[:idx] + self._items[idx + 1:]
            await self._commit(new_items, action="delete", bet_id=bet_id)

    # ---------- internals ----------

    def _index_of(self, bet_id: str, *, missing_ok: bool = False) -> Optional[int]:
        for idx, item in enumerate(self._items):
            if str(item.get("id")) == bet_id:
                return idx
        if missing_ok:
            return None
        raise NotFound("not found")

    @staticmethod
    def _new_id(taken: set[str]) -> str:
        candidate = now_ms()
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)

    async def _commit(self, new_items: list[dict[str, Any]], *, action: str, bet_id: Optional[str] = None) -> None:
        # Caller holds self._lock.
        updated_at_ms = max(now_ms(), self._updated_at_ms + 1)
        now = utcnow()
        # Snapshot is written last; any earlier failure leaves it as it was
        await _db.db.bet_backups.insert_one({
            "name": f"bets-{backup_stamp(now)}",
            "created_at_ms": updated_at_ms,
            "action": action,
            "bet_id": bet_id,
            "items": copy.deepcopy(new_items),
        })
        await _db.db.bets.replace_one(
            {"_id": SNAPSHOT_ID},
            {"_id": SNAPSHOT_ID, "items": new_items, "updated_at_ms": updated_at_ms},
            upsert=True,
        )

        self._items = new_items
        self._updated_at_ms = updated_at_ms
        logger.info("Bets %s committed (bet_id=%s, total=%d)", action, bet_id, len(new_items))

        if self._publish is not None:
            try:
                await self._publish(BETS_UPDATE_EVENT, self.snapshot_payload())
            except Exception:
                # Publishing must never fail a persisted write
                logger.exception("Failed to publish %s after %s", BETS_UPDATE_EVENT, action)


bet_store = BetStore(publish=websocket_manager.broadcast)
