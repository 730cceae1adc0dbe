"""
backend/betoff/config.py

Purpose:
    Central settings loading for the BETOFF backend and its operator tools.

Dependencies:
    - pydantic-settings
    - pathlib
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    ADMIN_PASSWORD: str = "betoff07"
    MONGO_URI: str = "mongodb://localhost:27017/betoff"
    MONGO_DB: str = "betoff"
    BACKEND_CORS_ORIGINS: str = "*"

    # Exchange rate: RUB per 1 USDT
    DEFAULT_RUB_RATE: float = 80.78

    # One-shot import of a legacy bets.json when the snapshot is still empty
    LEGACY_BETS_FILE: str = ""

    # Built frontend (served as SPA when the directory exists)
    CLIENT_DIST: str = str(Path(__file__).resolve().parent.parent.parent / "client" / "dist")

    # WebSocket realtime stream
    WS_EVENTS_ENABLED: bool = True
    WS_HEARTBEAT_SECONDS: int = 30
    WS_MAX_CONNECTIONS: int = 500

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }


settings = Settings()
