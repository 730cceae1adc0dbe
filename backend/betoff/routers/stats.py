"""Server-side dashboard statistics, computed from the same engine viewers use."""

from fastapi import APIRouter, Query

from betoff.services.bet_store import bet_store
from betoff.services.money import BASE_CURRENCY
from betoff.services.rate_store import rate_store
from betoff.services.stats import compute_dashboard
from betoff.services.windows import Period

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("")
async def get_stats(
    period: str = Query("DAY"),
    currency: str = Query(BASE_CURRENCY),
):
    dashboard = compute_dashboard(
        bet_store.items(),
        period=Period.parse(period),
        rate=rate_store.current().rubPerUsdt,
        currency=currency.upper(),
    )
    return dashboard.to_dict()
