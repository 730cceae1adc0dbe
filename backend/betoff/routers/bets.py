"""Bets API: the ordered collection, its last-updated marker and admin mutations."""

from typing import Any

from fastapi import APIRouter, Body, Depends

from betoff.models.bet import MetaResponse, StatusChangeRequest
from betoff.services.auth_service import require_admin
from betoff.services.bet_store import bet_store
from betoff.services.import_service import (
    import_merge_order,
    normalize_import_items,
    quick_status_patch,
)

router = APIRouter(prefix="/api", tags=["bets"])


@router.get("/bets")
async def list_bets():
    """Full collection, newest first."""
    return bet_store.items()


@router.get("/meta", response_model=MetaResponse)
async def get_meta():
    return MetaResponse(updatedAt=bet_store.updated_at_ms)


@router.put("/bets", dependencies=[Depends(require_admin)])
async def replace_bets(payload: Any = Body(None)):
    """Replace the whole collection (used by the admin JSON editor)."""
    await bet_store.replace_all(payload)
    return {"ok": True}


@router.post("/bets", dependencies=[Depends(require_admin)])
async def add_bet(payload: Any = Body(None)):
    bet_id = await bet_store.add(payload)
    return {"ok": True, "id": bet_id}


@router.post("/bets/import", dependencies=[Depends(require_admin)])
async def import_bets(payload: Any = Body(None)):
    """Bulk add: entries are normalized and prepended, file order reversed."""
    items = normalize_import_items(payload)
    ids = await bet_store.prepend_many(import_merge_order(items))
    return {"ok": True, "added": len(ids), "ids": ids}


@router.patch("/bets/{bet_id}", dependencies=[Depends(require_admin)])
async def patch_bet(bet_id: str, payload: Any = Body(None)):
    await bet_store.patch(bet_id, payload)
    return {"ok": True}


@router.post("/bets/{bet_id}/status", dependencies=[Depends(require_admin)])
async def change_status(bet_id: str, body: StatusChangeRequest):
    """One-click status switch; win_value is re-derived from stake and odds."""
    bet = await bet_store.patch_with(bet_id, lambda current: quick_status_patch(current, body.status))
    return {"ok": True, "bet": bet}


@router.delete("/bets/{bet_id}", dependencies=[Depends(require_admin)])
async def delete_bet(bet_id: str):
    await bet_store.delete(bet_id)
    return {"ok": True}
