from fastapi import APIRouter, Depends, Response, status

from betoff.services.auth_service import require_admin

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/check", dependencies=[Depends(require_admin)])
async def check_password():
    """200 when the x-admin-password header is valid (admin auto-login)."""
    return Response(status_code=status.HTTP_200_OK)
