import json
import logging
from pathlib import Path

from betoff.config import settings
from betoff.errors import InvalidArgument
from betoff.services.bet_store import BetStore

logger = logging.getLogger("betoff.seed")


async def seed_legacy_bets(store: BetStore, path: str | None = None) -> int:
    """Import a legacy bets.json once, when the stored collection is empty."""
    path = path if path is not None else settings.LEGACY_BETS_FILE
    if not path:
        logger.debug("LEGACY_BETS_FILE not set, skipping seed")
        return 0
    if store.items():
        logger.info("Legacy seed skipped (collection already has %d bets)", len(store.items()))
        return 0

    legacy = Path(path)
    if not legacy.is_file():
        logger.warning("Legacy bets file %s not found, skipping seed", legacy)
        return 0
    try:
        payload = json.loads(legacy.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.exception("Legacy bets file %s unreadable, skipping seed", legacy)
        return 0
    if not isinstance(payload, list):
        logger.warning("Legacy bets file %s is not a JSON array, skipping seed", legacy)
        return 0

    try:
        count = await store.replace_all([item for item in payload if isinstance(item, dict)])
    except InvalidArgument as exc:
        logger.error("Legacy bets file %s rejected: %s", legacy, exc.message)
        return 0
    logger.info("Seeded %d bets from %s", count, legacy)
    return count
