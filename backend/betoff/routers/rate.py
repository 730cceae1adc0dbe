from fastapi import APIRouter, Depends

from betoff.models.bet import RateUpdateRequest
from betoff.services.auth_service import require_admin
from betoff.services.rate_store import rate_store

router = APIRouter(prefix="/api/rate", tags=["rate"])


@router.get("")
async def get_rate():
    return {"rubPerUsdt": rate_store.current().rubPerUsdt}


@router.put("", dependencies=[Depends(require_admin)])
async def put_rate(body: RateUpdateRequest):
    rate = await rate_store.set_rate(body.rubPerUsdt)
    return {"ok": True, "rubPerUsdt": rate.rubPerUsdt}
