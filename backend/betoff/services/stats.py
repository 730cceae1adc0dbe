"""
backend/betoff/services/stats.py

Purpose:
    Statistics over a (usually period-filtered) list of bet records:
    winrate, profit, ROI and average odds over decided bets, and the
    current streak of identical outcomes. Pure functions over resident
    data; no I/O.

Dependencies:
    - betoff.services.money
    - betoff.services.windows
"""

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Optional, Sequence

from betoff.models.bet import BetStatus
from betoff.services.money import (
    BASE_CURRENCY,
    REFERENCE_CURRENCY,
    as_number,
    from_base,
    normalized_result,
    sanitize_rate,
    to_base,
)
from betoff.services.windows import Period, filter_by_period


@dataclass(frozen=True)
class BetStats:
    total: int
    win_rate: int
    profit: float           # USDT
    roi: str                # percent, one decimal
    avg_odds: float


@dataclass(frozen=True)
class Streak:
    outcome: Optional[BetStatus]
    length: int


@dataclass(frozen=True)
class DashboardStats:
    period: Period
    currency: str
    rate: float
    stats: BetStats
    streak: Streak
    profit_display: float
    bet_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period.value,
            "currency": self.currency,
            "rubPerUsdt": self.rate,
            "total": self.stats.total,
            "winRate": self.stats.win_rate,
            "profit": self.stats.profit,
            "profitDisplay": self.profit_display,
            "roi": self.stats.roi,
            "avgOdds": self.stats.avg_odds,
            "streak": {
                "outcome": self.streak.outcome.value if self.streak.outcome else None,
                "length": self.streak.length,
            },
            "betCount": self.bet_count,
        }


def _fixed(value: float, places: int) -> str:
    quantum = Decimal(1).scaleb(-places)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def _is_decided(bet: Mapping[str, Any]) -> bool:
    return BetStatus.coerce(bet.get("status")) is not BetStatus.pending


def aggregate(subset: Sequence[Mapping[str, Any]], rate: Any) -> BetStats:
    eligible = [bet for bet in subset if _is_decided(bet)]
    total = len(eligible)
    if total == 0:
        return BetStats(total=0, win_rate=0, profit=0.0, roi="0.0", avg_odds=0.0)

    won = sum(1 for bet in eligible if BetStatus.coerce(bet.get("status")) is BetStatus.won)
    win_rate = int(math.floor(won / total * 100 + 0.5))

    profit = sum(to_base(normalized_result(bet), bet, rate) for bet in eligible)
    stakes = sum(to_base(as_number(bet.get("stake_value")), bet, rate) for bet in eligible)
    roi = _fixed(profit / stakes * 100, 1) if stakes else "0.0"

    avg_odds = float(_fixed(sum(as_number(bet.get("coef")) for bet in eligible) / total, 2))
    return BetStats(total=total, win_rate=win_rate, profit=profit, roi=roi, avg_odds=avg_odds)


def current_streak(ordered_subset: Sequence[Mapping[str, Any]]) -> Streak:
    """Run of identical outcomes from the newest decided bet (list is newest-first)."""
    target: Optional[BetStatus] = None
    length = 0
    for bet in ordered_subset:
        status = BetStatus.coerce(bet.get("status"))
        if status is BetStatus.pending:
            continue
        if target is None:
            target = status
        elif status is not target:
            break
        length += 1
    return Streak(outcome=target, length=length)


def compute_dashboard(
    bets: Sequence[Mapping[str, Any]],
    *,
    period: Period,
    rate: Any,
    currency: str = BASE_CURRENCY,
    now: Optional[datetime] = None,
) -> DashboardStats:
    """Window filter -> aggregate -> streak, the way the dashboard shows them."""
    rate = sanitize_rate(rate)
    currency = REFERENCE_CURRENCY if currency == REFERENCE_CURRENCY else BASE_CURRENCY
    subset = filter_by_period(bets, period, now)
    stats = aggregate(subset, rate)
    return DashboardStats(
        period=period,
        currency=currency,
        rate=rate,
        stats=stats,
        streak=current_streak(subset),
        profit_display=from_base(stats.profit, currency, rate),
        bet_count=len(subset),
    )
