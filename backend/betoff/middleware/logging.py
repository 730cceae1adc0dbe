"""
backend/betoff/middleware/logging.py

Purpose:
    Request audit log for the BETOFF API. Every request produces one JSON
    line; admin writes additionally carry the affected bet id and whether
    the shared password was accepted, so a mutation in bet_backups can be
    matched to the request that caused it. The password itself is never
    logged.
"""

import hashlib
import json
import logging
import re
import time
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from betoff.services.auth_service import ADMIN_HEADER

logger = logging.getLogger("betoff.http")

REQUEST_ID_HEADER = "X-Request-ID"
WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

_BET_PATH = re.compile(r"^/api/bets/(?!import$)([^/]+)")
_QUIET_PATHS = frozenset({"/api/health"})


def bet_id_from_path(path: str) -> Optional[str]:
    match = _BET_PATH.match(path)
    return match.group(1) if match else None


def _admin_outcome(request: Request, status_code: int) -> Optional[str]:
    if ADMIN_HEADER not in request.headers:
        return None
    return "rejected" if status_code == 401 else "accepted"


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        # Operator tools may pass their own id through
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start = time.perf_counter()

        response: Response = await call_next(request)

        path = request.url.path
        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": path,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            "client_ip_hash": hashlib.sha256(
                (request.client.host or "").encode()
            ).hexdigest()[:12] if request.client else None,
        }
        if request.method in WRITE_METHODS:
            log_data["write"] = True
            log_data["bet_id"] = bet_id_from_path(path)
        admin = _admin_outcome(request, response.status_code)
        if admin:
            log_data["admin"] = admin

        if response.status_code >= 400:
            level = logging.WARNING
        elif path in _QUIET_PATHS:
            level = logging.DEBUG
        else:
            level = logging.INFO
        logger.log(level, json.dumps(log_data))

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
