"""
backend/betoff/services/money.py

Purpose:
    Monetary normalization of bet records: the signed net result of a bet in
    its own currency, and conversion between the reference currency (RUB)
    and the base currency (USDT) through a single guarded exchange rate.

Dependencies:
    - betoff.config
    - betoff.models.bet
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping

from betoff.config import settings
from betoff.models.bet import BetStatus

BASE_CURRENCY = "USDT"
REFERENCE_CURRENCY = "RUB"


def as_number(value: Any) -> float:
    """Lenient numeric read of a stored field; garbage and non-finite read as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def round2(value: float) -> float:
    """Round half away from zero to cents."""
    number = Decimal(str(as_number(value)))
    return float(number.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def sanitize_rate(rate: Any) -> float:
    """Return a usable RUB-per-USDT rate, falling back to the default."""
    if rate is None or isinstance(rate, bool):
        return settings.DEFAULT_RUB_RATE
    try:
        value = float(rate)
    except (TypeError, ValueError):
        return settings.DEFAULT_RUB_RATE
    if not math.isfinite(value) or value <= 0:
        return settings.DEFAULT_RUB_RATE
    return value


def bet_unit(bet: Mapping[str, Any]) -> str:
    return bet.get("stake_currency") or bet.get("win_currency") or BASE_CURRENCY


def normalized_result(bet: Mapping[str, Any]) -> float:
    """Signed net profit/loss of a bet in its own currency.

    won:     win_value - stake_value (win_value is the gross payout)
    lost:    win_value when already negative, else -stake_value, else 0
    pending: 0, so undecided bets never move profit or winrate
    """
    win = as_number(bet.get("win_value"))
    stake = as_number(bet.get("stake_value"))
    status = BetStatus.coerce(bet.get("status"))

    if status is BetStatus.lost:
        if win < 0:
            return win
        return -stake if stake > 0 else 0.0
    if status is BetStatus.pending:
        return 0.0
    return win - stake


def to_base(amount: float, bet: Mapping[str, Any], rate: Any) -> float:
    """Express an amount denominated in the bet's unit in USDT."""
    if bet_unit(bet) == REFERENCE_CURRENCY:
        return amount / sanitize_rate(rate)
    return amount


def from_base(amount: float, currency: str, rate: Any) -> float:
    """Express a USDT amount in the requested display currency."""
    if currency == REFERENCE_CURRENCY:
        return amount * sanitize_rate(rate)
    return amount
