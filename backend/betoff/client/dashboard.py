"""
backend/betoff/client/dashboard.py

Purpose:
    Viewer-side dashboard derived purely from the synchronizer's held state.
    Switching period or profit currency recomputes window filter, aggregate
    and streak locally, without any network round trip.

Dependencies:
    - betoff.client.sync
    - betoff.services.stats
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from betoff.client.state import PERIOD_KEY, ClientStateFile
from betoff.client.sync import LiveBetsSync
from betoff.models.bet import BetStatus
from betoff.services.money import BASE_CURRENCY, REFERENCE_CURRENCY, bet_unit, normalized_result
from betoff.services.stats import DashboardStats, compute_dashboard
from betoff.services.windows import Period, filter_by_period

PAGE_SIZE = 20

_JUST_NOW_MS = 30 * 60 * 1000
_RECENT_MS = 24 * 60 * 60 * 1000


@dataclass(frozen=True)
class DashboardFrame:
    dashboard: DashboardStats
    rows: list[dict[str, Any]]
    has_more: bool
    connected: bool
    updated_label: str


def freshness_label(last_updated_ms: int, now_ms: int) -> str:
    if not last_updated_ms:
        return "-"
    delta = now_ms - last_updated_ms
    if delta <= _JUST_NOW_MS:
        return "just now"
    if delta <= _RECENT_MS:
        return "recently"
    stamp = datetime.fromtimestamp(last_updated_ms / 1000)
    return f"{stamp.day} {stamp:%B}"


def streak_label(dashboard: DashboardStats) -> str:
    streak = dashboard.streak
    if streak.outcome is BetStatus.won:
        return f"{streak.length} won"
    if streak.outcome is BetStatus.lost:
        return f"{streak.length} lost"
    return "0"


def format_amount(value: float, unit: str) -> str:
    text = f"{value:,.2f}".rstrip("0").rstrip(".")
    return f"{text} {unit}"


class DashboardView:
    def __init__(self, sync: LiveBetsSync, *, state_file: Optional[ClientStateFile] = None) -> None:
        self._sync = sync
        self._state_file = state_file or ClientStateFile()
        self.period = Period.parse(self._state_file.get(PERIOD_KEY))
        self.currency = BASE_CURRENCY
        self.limit = PAGE_SIZE

    def set_period(self, period: Period | str) -> None:
        self.period = period if isinstance(period, Period) else Period.parse(period)
        self._state_file.set(PERIOD_KEY, self.period.value)

    def toggle_currency(self) -> str:
        self.currency = REFERENCE_CURRENCY if self.currency == BASE_CURRENCY else BASE_CURRENCY
        return self.currency

    def show_more(self) -> None:
        self.limit += PAGE_SIZE

    def frame(self, now: Optional[datetime] = None) -> DashboardFrame:
        now = now or datetime.now()
        bets = self._sync.visible_bets()
        dashboard = compute_dashboard(
            bets,
            period=self.period,
            rate=self._sync.rate,
            currency=self.currency,
            now=now,
        )
        filtered = filter_by_period(bets, self.period, now)
        return DashboardFrame(
            dashboard=dashboard,
            rows=filtered[: self.limit],
            has_more=len(filtered) > self.limit,
            connected=self._sync.connected,
            updated_label=freshness_label(self._sync.last_updated_ms, int(now.timestamp() * 1000)),
        )

    def render(self, now: Optional[datetime] = None) -> list[str]:
        """Plain-text rendering for terminal viewers."""
        frame = self.frame(now)
        dash = frame.dashboard
        lines = [
            f"BETOFF [{'LIVE' if frame.connected else 'OFFLINE'}] updated {frame.updated_label}",
            f"period {dash.period.value}  winrate {dash.stats.win_rate}%  "
            f"profit {format_amount(dash.profit_display, dash.currency)}  "
            f"streak {streak_label(dash)}  roi {dash.stats.roi}%  avg odds {dash.stats.avg_odds}",
        ]
        for bet in frame.rows:
            result = normalized_result(bet)
            sign = "+" if result > 0 else ""
            lines.append(
                f"  [{bet.get('status', '')}] {bet.get('match', '')} | {bet.get('bet', '')} "
                f"@ {bet.get('coef', '')}  {sign}{format_amount(result, bet_unit(bet))}"
            )
        if frame.has_more:
            lines.append(f"  ... {dash.bet_count - len(frame.rows)} more")
        return lines
