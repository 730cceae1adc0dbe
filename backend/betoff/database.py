"""
backend/betoff/database.py

Purpose:
    MongoDB connection bootstrap and index management.

    Collections:
        bets         one snapshot document holding the ordered bet list
        bet_backups  insert-only timestamped copies of every snapshot
        meta         small singleton documents (exchange rate)

Dependencies:
    - motor.motor_asyncio
    - betoff.config
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from betoff.config import settings

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None

logger = logging.getLogger("betoff.database")


async def connect_db() -> None:
    global client, db
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        maxPoolSize=10,
        minPoolSize=1,
    )
    db = client[settings.MONGO_DB]
    await _ensure_indexes()


async def close_db() -> None:
    global client
    if client:
        client.close()


async def _ensure_indexes() -> None:
    await db.bet_backups.create_index("created_at_ms", name="bet_backups_created_at")
    logger.info("Database indexes ensured")
