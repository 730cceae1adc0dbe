"""
backend/betoff/services/import_service.py

Purpose:
    Admin conveniences around bet records: bulk JSON import (parse,
    normalize, merge order) and the quick status switch that keeps
    win_value consistent with status, stake and odds.

Dependencies:
    - betoff.models.bet
    - betoff.services.money
"""

import json
import logging
import math
import secrets
from typing import Any, Mapping

from betoff.errors import ParseFailure
from betoff.models.bet import Bet, BetStatus
from betoff.services.money import BASE_CURRENCY, as_number, round2
from betoff.utils import now_ms

logger = logging.getLogger("betoff.import_service")


def _generated_id() -> str:
    return f"{now_ms()}{secrets.token_hex(6)}"


def _explicit_number(value: Any) -> float | None:
    """Numeric value when one was actually given, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def derived_win_value(status: BetStatus, stake: float, coef: float) -> float:
    if status is BetStatus.won:
        return round2(stake * coef)
    if status is BetStatus.lost:
        return -abs(stake)
    return 0.0


def normalize_imported_bet(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Canonical record from an untrusted import entry.

    Unknown statuses become pending; a missing win_value is derived from
    status, stake and odds.
    """
    status = BetStatus.coerce(raw.get("status"))
    stake = as_number(raw.get("stake_value"))
    coef = as_number(raw.get("coef"))
    win = _explicit_number(raw.get("win_value"))
    if win is None:
        win = derived_win_value(status, stake, coef)
    stake_currency = str(raw.get("stake_currency") or BASE_CURRENCY)

    bet = Bet(
        id=str(raw.get("id") or _generated_id()),
        match=str(raw.get("match") or ""),
        bet=str(raw.get("bet") or ""),
        status=status,
        stake_value=stake,
        stake_currency=stake_currency,
        coef=coef,
        win_value=win,
        win_currency=str(raw.get("win_currency") or stake_currency),
        added_date=str(raw.get("added_date") or "") or None,
        time=raw.get("time"),
    )
    return bet.to_record()


def parse_import_document(text: str | bytes) -> list[dict[str, Any]]:
    """Parse and normalize a bulk-import document; all or nothing."""
    try:
        payload = json.loads(text)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ParseFailure(f"invalid JSON: {exc}") from exc
    return normalize_import_items(payload)


def normalize_import_items(payload: Any) -> list[dict[str, Any]]:
    if not isinstance(payload, list):
        raise ParseFailure("import document must be a JSON array of objects")
    for position, item in enumerate(payload):
        if not isinstance(item, dict):
            raise ParseFailure(f"entry {position} is not an object")
    items = [normalize_imported_bet(item) for item in payload]
    logger.info("Import document normalized: %d entries", len(items))
    return items


def import_merge_order(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Imported entries go on top, last entry of the file first."""
    return list(reversed(items))


def quick_status_patch(bet: Mapping[str, Any], to_status: Any) -> dict[str, Any]:
    """Patch for the admin one-click status switch."""
    status = BetStatus.coerce(to_status)
    stake = as_number(bet.get("stake_value"))
    coef = as_number(bet.get("coef"))
    patch: dict[str, Any] = {
        "status": status.value,
        "win_value": derived_win_value(status, stake, coef),
        "win_currency": bet.get("win_currency") or bet.get("stake_currency") or BASE_CURRENCY,
    }
    if not bet.get("stake_currency"):
        patch["stake_currency"] = BASE_CURRENCY
    return patch
