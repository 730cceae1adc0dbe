"""
backend/tests/test_logging_middleware.py

Purpose:
    Request audit lines: write flag, bet id, admin outcome, request id.
"""

from __future__ import annotations

import json
import logging

from fastapi import FastAPI, Response
from fastapi.testclient import TestClient

from betoff.middleware.logging import StructuredLoggingMiddleware, bet_id_from_path


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(StructuredLoggingMiddleware)

    @app.patch("/api/bets/{bet_id}")
    async def patch(bet_id: str):
        return {"ok": True}

    @app.delete("/api/bets/{bet_id}")
    async def delete(bet_id: str):
        return Response(status_code=401)

    @app.get("/api/health")
    async def health():
        return "ok"

    return app


def _lines(caplog) -> list[dict]:
    return [json.loads(record.getMessage()) for record in caplog.records if record.name == "betoff.http"]


def test_bet_id_from_path():
    assert bet_id_from_path("/api/bets/1718000000000") == "1718000000000"
    assert bet_id_from_path("/api/bets/42/status") == "42"
    assert bet_id_from_path("/api/bets/import") is None
    assert bet_id_from_path("/api/bets") is None


def test_write_lines_carry_bet_id_and_admin_outcome(caplog):
    client = TestClient(_app())
    with caplog.at_level(logging.DEBUG, logger="betoff.http"):
        client.patch("/api/bets/7", json={}, headers={"x-admin-password": "secret"})
        client.delete("/api/bets/8", headers={"x-admin-password": "wrong"})

    accepted, rejected = _lines(caplog)
    assert accepted["write"] is True
    assert accepted["bet_id"] == "7"
    assert accepted["admin"] == "accepted"
    assert rejected["admin"] == "rejected"
    assert rejected["status"] == 401
    assert all("secret" not in record.getMessage() for record in caplog.records)


def test_request_id_passthrough_and_quiet_health(caplog):
    client = TestClient(_app())
    with caplog.at_level(logging.DEBUG, logger="betoff.http"):
        resp = client.get("/api/health", headers={"X-Request-ID": "op-1"})

    assert resp.headers["X-Request-ID"] == "op-1"
    (line,) = _lines(caplog)
    assert line["request_id"] == "op-1"
    assert "write" not in line
    assert "admin" not in line
    assert [record.levelno for record in caplog.records if record.name == "betoff.http"] == [logging.DEBUG]
