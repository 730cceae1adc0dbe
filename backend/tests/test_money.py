"""
backend/tests/test_money.py

Purpose:
    Monetary normalizer: signed result per status and guarded RUB/USDT
    conversion.
"""

from __future__ import annotations

import math

import pytest

from betoff.models.bet import BetStatus
from betoff.services.money import (
    as_number,
    bet_unit,
    from_base,
    normalized_result,
    round2,
    sanitize_rate,
    to_base,
)

WON = BetStatus.won.value
LOST = BetStatus.lost.value
PENDING = BetStatus.pending.value


def test_won_result_is_payout_minus_stake():
    bet = {"status": WON, "stake_value": 100, "coef": 2, "win_value": 200}
    assert normalized_result(bet) == 100


def test_lost_without_payout_loses_stake():
    bet = {"status": LOST, "stake_value": 50, "win_value": 0}
    assert normalized_result(bet) == -50


def test_lost_with_negative_payout_keeps_it():
    bet = {"status": LOST, "stake_value": 50, "win_value": -30}
    assert normalized_result(bet) == -30


def test_lost_with_positive_payout_still_loses_stake():
    bet = {"status": LOST, "stake_value": 40, "win_value": 80}
    assert normalized_result(bet) == -40


def test_lost_without_stake_is_zero():
    assert normalized_result({"status": LOST, "stake_value": 0}) == 0


@pytest.mark.parametrize("status", [PENDING, "void", None, ""])
def test_pending_and_unknown_statuses_are_zero(status):
    bet = {"status": status, "stake_value": 10, "win_value": 999}
    assert normalized_result(bet) == 0


def test_string_amounts_are_read_leniently():
    bet = {"status": WON, "stake_value": "10", "win_value": "25.5"}
    assert normalized_result(bet) == pytest.approx(15.5)
    assert as_number("abc") == 0
    assert as_number(float("nan")) == 0
    assert as_number(True) == 0


@pytest.mark.parametrize("rate", [None, 0, -3, "garbage", float("inf"), float("nan")])
def test_invalid_rate_falls_back_to_default(rate):
    assert sanitize_rate(rate) == pytest.approx(80.78)


def test_rub_amount_converted_to_usdt():
    bet = {"stake_currency": "RUB"}
    assert to_base(161.56, bet, 80.78) == pytest.approx(2.0)
    assert to_base(80.78, bet, 0) == pytest.approx(1.0)
    assert math.isfinite(to_base(100, bet, None))


def test_usdt_amount_passes_through():
    assert to_base(12.5, {"stake_currency": "USDT"}, 90) == 12.5
    assert to_base(12.5, {}, 90) == 12.5


def test_unit_falls_back_to_win_currency_then_usdt():
    assert bet_unit({"win_currency": "RUB"}) == "RUB"
    assert bet_unit({"stake_currency": "USDT", "win_currency": "RUB"}) == "USDT"
    assert bet_unit({}) == "USDT"


def test_display_conversion_from_base():
    assert from_base(2, "RUB", 80) == 160
    assert from_base(2, "USDT", 80) == 2


def test_round2_rounds_half_up():
    assert round2(2.675) == 2.68
    assert round2(10 * 1.555) == 15.55
    assert round2(-1.005) == -1.01
