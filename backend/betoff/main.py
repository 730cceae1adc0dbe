"""
backend/betoff/main.py

Purpose:
    FastAPI application bootstrap: middleware/router wiring, startup loading
    of the bet snapshot and exchange rate, realtime manager lifecycle,
    error mapping, and the optional built frontend.

Dependencies:
    - betoff.database
    - betoff.services.bet_store
    - betoff.services.rate_store
    - betoff.services.websocket_manager
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pymongo.errors import ConnectionFailure, OperationFailure, ServerSelectionTimeoutError

from betoff.config import settings
from betoff.database import close_db, connect_db
from betoff.errors import BetoffError
from betoff.middleware.logging import StructuredLoggingMiddleware, setup_logging

logger = logging.getLogger("betoff")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await connect_db()
    from betoff.seed import seed_legacy_bets
    from betoff.services.bet_store import bet_store
    from betoff.services.rate_store import rate_store
    from betoff.services.websocket_manager import websocket_manager

    loaded = await bet_store.load()
    logger.info("Bet collection loaded on startup: %d bets", loaded)
    seeded = await seed_legacy_bets(bet_store)
    if seeded:
        logger.info("Legacy bets imported on startup: %d", seeded)
    rate = await rate_store.load()
    logger.info("Exchange rate on startup: %.4f RUB/USDT", rate.rubPerUsdt)

    if settings.WS_EVENTS_ENABLED:
        await websocket_manager.start()
        logger.info("WebSocket realtime manager enabled")
    else:
        logger.info("WebSocket realtime manager disabled via config")

    yield

    if settings.WS_EVENTS_ENABLED:
        await websocket_manager.stop()
    await close_db()


app = FastAPI(
    title="BETOFF",
    description="Realtime betting-slip statistics dashboard",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS.split(","),
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "x-admin-password"],
)

# Structured logging
app.add_middleware(StructuredLoggingMiddleware)

# Routers
from betoff.routers.auth import router as auth_router
from betoff.routers.bets import router as bets_router
from betoff.routers.rate import router as rate_router
from betoff.routers.stats import router as stats_router
from betoff.routers.ws import router as ws_router

app.include_router(auth_router)
app.include_router(bets_router)
app.include_router(rate_router)
app.include_router(stats_router)
app.include_router(ws_router)


@app.exception_handler(BetoffError)
async def betoff_error_handler(request: Request, exc: BetoffError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed payloads are InvalidArgument (400), without internal field paths."""
    errors = []
    for err in exc.errors():
        loc = err.get("loc", ())
        # Strip the "body" / "query" prefix for cleaner messages
        field = ".".join(str(l) for l in loc[1:]) if len(loc) > 1 else str(loc[-1]) if loc else "unknown"
        errors.append({"field": field, "message": err.get("msg", "Invalid value.")})
    return JSONResponse(status_code=400, content={"error": "invalid payload", "errors": errors})


@app.exception_handler(ServerSelectionTimeoutError)
async def db_timeout_handler(request: Request, exc: ServerSelectionTimeoutError):
    logger.error("Database timeout: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"error": "Service temporarily unavailable."})


@app.exception_handler(ConnectionFailure)
async def db_connection_handler(request: Request, exc: ConnectionFailure):
    logger.error("Database connection failure: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"error": "Service temporarily unavailable."})


@app.exception_handler(OperationFailure)
async def db_operation_handler(request: Request, exc: OperationFailure):
    logger.error("Database operation error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "An internal error occurred."})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all: log the real error, return a safe generic message."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "An internal error occurred."})


@app.get("/api/health")
async def health():
    return "ok"


def mount_frontend(application: FastAPI, dist_dir: str) -> bool:
    """Serve the built SPA; unknown non-API paths fall back to index.html."""
    dist = Path(dist_dir)
    index = dist / "index.html"
    if not index.is_file():
        logger.info("No built frontend at %s, serving API only", dist)
        return False

    assets = dist / "assets"
    if assets.is_dir():
        application.mount("/assets", StaticFiles(directory=str(assets)), name="assets")

    @application.get("/{full_path:path}", include_in_schema=False)
    async def spa_fallback(full_path: str):
        if full_path.startswith(("api/", "ws")):
            return JSONResponse(status_code=404, content={"error": "not found"})
        candidate = (dist / full_path).resolve()
        if full_path and candidate.is_file() and dist.resolve() in candidate.parents:
            return FileResponse(str(candidate))
        return FileResponse(str(index))

    return True


mount_frontend(app, settings.CLIENT_DIST)
