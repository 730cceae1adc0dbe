"""Small JSON file that survives viewer restarts (last update marker, period)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger("betoff.client.state")

DEFAULT_STATE_PATH = Path.home() / ".betoff" / "viewer.json"

LAST_UPDATE_KEY = "last_update"
PERIOD_KEY = "period"


class ClientStateFile:
    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else DEFAULT_STATE_PATH
        self._data: dict[str, Any] = self._read()

    def _read(self) -> dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            logger.warning("Viewer state %s unreadable, starting fresh", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if self._data.get(key) == value:
            return
        self._data[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._data), encoding="utf-8")
        except OSError:
            # Display hint only; the in-memory value still applies
            logger.warning("Could not persist viewer state to %s", self.path, exc_info=True)

    def last_update_ms(self) -> int:
        try:
            return int(self.get(LAST_UPDATE_KEY) or 0)
        except (TypeError, ValueError):
            return 0
