"""
backend/tests/test_dashboard.py

Purpose:
    Viewer dashboard frame: local period/currency recomputation, paging,
    persisted period choice and the freshness label.
"""

from __future__ import annotations

from datetime import datetime

import pytest

from betoff.client.dashboard import PAGE_SIZE, DashboardView, format_amount, freshness_label, streak_label
from betoff.client.state import PERIOD_KEY, ClientStateFile
from betoff.client.sync import LiveBetsSync
from betoff.services.windows import Period

NOW = datetime(2024, 3, 15, 12, 0)


class _NoApi:
    websocket_url = "ws://unused/ws"


def _bet(idx: int, *, date: str = "15/03/2024", status: str = "Выиграна") -> dict:
    return {
        "id": str(idx),
        "match": f"Team {idx} - Team {idx + 1}",
        "bet": "П1",
        "status": status,
        "stake_value": 10,
        "stake_currency": "USDT",
        "coef": 2,
        "win_value": 20 if status == "Выиграна" else -10,
        "added_date": date,
    }


@pytest.fixture
def state_file(tmp_path):
    return ClientStateFile(tmp_path / "viewer.json")


@pytest.fixture
def sync(state_file):
    live = LiveBetsSync(_NoApi(), state_file=state_file)
    live.bets = [_bet(i) for i in range(PAGE_SIZE + 5)] + [_bet(99, date="10/03/2024", status="Проиграна")]
    live.rate = 100.0
    return live


def test_day_frame_pages_rows(sync, state_file):
    view = DashboardView(sync, state_file=state_file)
    frame = view.frame(NOW)
    assert frame.dashboard.period is Period.day
    assert frame.dashboard.bet_count == PAGE_SIZE + 5
    assert len(frame.rows) == PAGE_SIZE
    assert frame.has_more is True
    assert frame.connected is False

    view.show_more()
    frame = view.frame(NOW)
    assert len(frame.rows) == PAGE_SIZE + 5
    assert frame.has_more is False


def test_period_switch_is_local_and_persisted(sync, state_file, tmp_path):
    view = DashboardView(sync, state_file=state_file)
    view.set_period("WEEK")
    frame = view.frame(NOW)
    assert frame.dashboard.bet_count == PAGE_SIZE + 6
    assert frame.dashboard.stats.total == PAGE_SIZE + 6
    assert frame.dashboard.streak.length == PAGE_SIZE + 5

    reopened = DashboardView(sync, state_file=ClientStateFile(tmp_path / "viewer.json"))
    assert reopened.period is Period.week
    assert state_file.get(PERIOD_KEY) == "WEEK"


def test_currency_toggle_converts_profit(sync, state_file):
    view = DashboardView(sync, state_file=state_file)
    usdt = view.frame(NOW).dashboard
    assert usdt.profit_display == pytest.approx(250.0)
    assert view.toggle_currency() == "RUB"
    rub = view.frame(NOW).dashboard
    assert rub.profit_display == pytest.approx(25000.0)
    assert view.toggle_currency() == "USDT"


def test_tentative_removal_hidden_from_frame(sync, state_file):
    view = DashboardView(sync, state_file=state_file)
    sync.remove_tentatively("0")
    frame = view.frame(NOW)
    assert frame.dashboard.bet_count == PAGE_SIZE + 4
    assert all(row["id"] != "0" for row in frame.rows)


def test_render_lines(sync, state_file):
    view = DashboardView(sync, state_file=state_file)
    lines = view.render(NOW)
    assert lines[0].startswith("BETOFF [OFFLINE]")
    assert "winrate 100%" in lines[1]
    assert "streak 25 won" in lines[1]
    assert lines[-1] == "  ... 5 more"
    assert "+10 USDT" in lines[2]


def test_freshness_label():
    now = 10 * 24 * 60 * 60 * 1000
    assert freshness_label(0, now) == "-"
    assert freshness_label(now - 60_000, now) == "just now"
    assert freshness_label(now - 2 * 60 * 60 * 1000, now) == "recently"
    older = freshness_label(now - 3 * 24 * 60 * 60 * 1000, now)
    assert older not in {"-", "just now", "recently"}


def test_labels(tmp_path):
    assert format_amount(1234.5, "RUB") == "1,234.5 RUB"
    assert format_amount(10.0, "USDT") == "10 USDT"
    empty_state = ClientStateFile(tmp_path / "empty.json")
    view_stats = DashboardView(LiveBetsSync(_NoApi(), state_file=empty_state), state_file=empty_state)
    assert streak_label(view_stats.frame(NOW).dashboard) == "0"
