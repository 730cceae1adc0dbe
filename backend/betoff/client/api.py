"""
backend/betoff/client/api.py

Purpose:
    Async HTTP client for the BETOFF API. Read calls used by the live view
    degrade gracefully (marker -> 0, rate -> default) the same way the web
    dashboard does; admin mutations raise the shared error taxonomy and are
    never retried.

Dependencies:
    - httpx
    - betoff.errors
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlparse, urlunparse

import httpx

from betoff.errors import (
    BetoffError,
    InvalidArgument,
    NotFound,
    TransportUnavailable,
    Unauthorized,
)
from betoff.services.auth_service import ADMIN_HEADER
from betoff.services.money import sanitize_rate

logger = logging.getLogger("betoff.client.api")

_ERRORS_BY_STATUS: dict[int, type[BetoffError]] = {
    400: InvalidArgument,
    401: Unauthorized,
    404: NotFound,
}


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text


class BetoffClient:
    """httpx.AsyncClient wrapper bound to one BETOFF server."""

    def __init__(
        self,
        base_url: str,
        *,
        password: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.password = password
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "BetoffClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def websocket_url(self) -> str:
        parsed = urlparse(self.base_url)
        scheme = "wss" if parsed.scheme == "https" else "ws"
        return urlunparse((scheme, parsed.netloc, parsed.path.rstrip("/") + "/ws", "", "", ""))

    async def _request(self, method: str, path: str, *, admin: bool = False, **kwargs) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if admin:
            if not self.password:
                raise Unauthorized("admin password not configured")
            headers[ADMIN_HEADER] = self.password
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TransportUnavailable(str(exc)) from exc

        if response.status_code >= 400:
            error_cls = _ERRORS_BY_STATUS.get(response.status_code)
            if error_cls is None:
                raise TransportUnavailable(f"HTTP {response.status_code} on {method} {path}")
            raise error_cls(_error_message(response))
        return response

    # ---------- viewer reads ----------

    async def fetch_bets(self) -> list[dict[str, Any]]:
        response = await self._request("GET", "/api/bets")
        payload = response.json()
        if not isinstance(payload, list):
            raise InvalidArgument("bets endpoint returned a non-array body")
        return [item for item in payload if isinstance(item, dict)]

    async def fetch_meta(self) -> int:
        """Authoritative last-updated marker; 0 when unavailable."""
        try:
            response = await self._request("GET", "/api/meta")
            return int(response.json().get("updatedAt") or 0)
        except (BetoffError, ValueError, TypeError, AttributeError) as exc:
            logger.debug("Marker fetch failed: %s", exc)
            return 0

    async def fetch_rate(self) -> float:
        """Current RUB/USDT rate; the default when unavailable."""
        try:
            response = await self._request("GET", "/api/rate")
            return sanitize_rate(response.json().get("rubPerUsdt"))
        except (BetoffError, ValueError, AttributeError) as exc:
            logger.debug("Rate fetch failed: %s", exc)
            return sanitize_rate(None)

    async def fetch_stats(self, period: str = "DAY", currency: str = "USDT") -> dict[str, Any]:
        response = await self._request("GET", "/api/stats", params={"period": period, "currency": currency})
        return response.json()

    # ---------- admin ----------

    async def check_password(self, password: Optional[str] = None) -> bool:
        candidate = password if password is not None else self.password
        if not candidate:
            return False
        try:
            await self._request("GET", "/api/auth/check", headers={ADMIN_HEADER: candidate})
        except Unauthorized:
            return False
        return True

    async def add_bet(self, bet: dict[str, Any]) -> str:
        response = await self._request("POST", "/api/bets", admin=True, json=bet)
        return str(response.json()["id"])

    async def patch_bet(self, bet_id: str, fields: dict[str, Any]) -> None:
        await self._request("PATCH", f"/api/bets/{bet_id}", admin=True, json=fields)

    async def set_status(self, bet_id: str, status: str) -> dict[str, Any]:
        response = await self._request("POST", f"/api/bets/{bet_id}/status", admin=True, json={"status": status})
        return response.json()["bet"]

    async def delete_bet(self, bet_id: str) -> None:
        await self._request("DELETE", f"/api/bets/{bet_id}", admin=True)

    async def replace_bets(self, bets: list[dict[str, Any]]) -> None:
        await self._request("PUT", "/api/bets", admin=True, json=bets)

    async def import_bets(self, items: list[dict[str, Any]]) -> list[str]:
        response = await self._request("POST", "/api/bets/import", admin=True, json=items)
        return list(response.json().get("ids", []))

    async def set_rate(self, rub_per_usdt: float) -> float:
        response = await self._request("PUT", "/api/rate", admin=True, json={"rubPerUsdt": rub_per_usdt})
        return float(response.json()["rubPerUsdt"])
