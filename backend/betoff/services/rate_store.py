"""
backend/betoff/services/rate_store.py

Purpose:
    Process-wide RUB-per-USDT exchange rate. Seeded with the configured
    default when nothing is persisted; replaced wholesale by admin action
    and announced to viewers as `rate:update`.

Dependencies:
    - betoff.database
    - betoff.services.websocket_manager
"""

from __future__ import annotations

import logging
import math
from typing import Any, Awaitable, Callable, Optional

import betoff.database as _db
from betoff.config import settings
from betoff.errors import InvalidArgument
from betoff.models.bet import ExchangeRate
from betoff.services.money import sanitize_rate
from betoff.services.websocket_manager import websocket_manager
from betoff.utils import now_ms

logger = logging.getLogger("betoff.rate_store")

RATE_DOC_ID = "exchange_rate"
RATE_UPDATE_EVENT = "rate:update"


def parse_rate(value: Any) -> float:
    """Strict parse for admin input: finite and positive, else InvalidArgument."""
    if value is None or isinstance(value, bool):
        raise InvalidArgument("invalid rate")
    try:
        rate = float(value)
    except (TypeError, ValueError):
        raise InvalidArgument("invalid rate") from None
    if not math.isfinite(rate) or rate <= 0:
        raise InvalidArgument("invalid rate")
    return rate


class RateStore:
    def __init__(self, *, publish: Optional[Callable[[str, dict[str, Any]], Awaitable[Any]]] = None) -> None:
        self._rate = ExchangeRate(rubPerUsdt=settings.DEFAULT_RUB_RATE, updatedAt=0)
        self._publish = publish

    def current(self) -> ExchangeRate:
        return self._rate

    async def load(self) -> ExchangeRate:
        doc = await _db.db.meta.find_one({"_id": RATE_DOC_ID})
        if doc is None:
            logger.info("No exchange rate persisted, seeding default %.2f", settings.DEFAULT_RUB_RATE)
            return await self._write(settings.DEFAULT_RUB_RATE)
        self._rate = ExchangeRate(
            rubPerUsdt=sanitize_rate(doc.get("rubPerUsdt")),
            updatedAt=int(doc.get("updatedAt") or 0),
        )
        return self._rate

    async def set_rate(self, value: Any) -> ExchangeRate:
        rate = await self._write(parse_rate(value))
        if self._publish is not None:
            try:
                await self._publish(RATE_UPDATE_EVENT, {"rubPerUsdt": rate.rubPerUsdt})
            except Exception:
                logger.exception("Failed to publish %s", RATE_UPDATE_EVENT)
        return rate

    async def _write(self, value: float) -> ExchangeRate:
        rate = ExchangeRate(rubPerUsdt=value, updatedAt=now_ms())
        await _db.db.meta.replace_one(
            {"_id": RATE_DOC_ID},
            {"_id": RATE_DOC_ID, **rate.model_dump()},
            upsert=True,
        )
        self._rate = rate
        logger.info("Exchange rate set to %.4f RUB/USDT", value)
        return rate


rate_store = RateStore(publish=websocket_manager.broadcast)
