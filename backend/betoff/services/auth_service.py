"""Shared-secret admin check for mutating endpoints."""

import logging
import secrets

from fastapi import Request

from betoff.config import settings
from betoff.errors import Unauthorized

logger = logging.getLogger("betoff.auth")

ADMIN_HEADER = "x-admin-password"


def password_matches(candidate: str | None) -> bool:
    expected = settings.ADMIN_PASSWORD
    if not candidate or not expected:
        return False
    return secrets.compare_digest(str(candidate).encode(), expected.encode())


async def require_admin(request: Request) -> None:
    """FastAPI dependency: rejects the request unless the admin password header matches."""
    if not password_matches(request.headers.get(ADMIN_HEADER)):
        logger.warning("Admin credential rejected on %s %s", request.method, request.url.path)
        raise Unauthorized()
