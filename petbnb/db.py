from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from .config import get_settings

_settings = get_settings()
_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    await db.bookings.create_index([("pet_owner_id", 1), ("created_at", -1)])
    await db.bookings.create_index([("pet_sitter_id", 1), ("created_at", -1)])
    # El cooldown siempre busca la última petición de un (booking, tipo)
    await db.care_requests.create_index(
        [("booking_id", 1), ("request_type", 1), ("created_at", -1)]
    )
    await db.conversations.create_index("participants_key", unique=True)
    await db.conversations.create_index([("participants", 1), ("updated_at", -1)])
    await db.messages.create_index([("conversation_id", 1), ("created_at", 1)])
    await db.pet_activities.create_index([("booking_id", 1), ("activity_timestamp", -1)])


async def get_db() -> AsyncIOMotorDatabase:
    global _client, _db
    if _db is None:
        _client = AsyncIOMotorClient(_settings.mongodb_uri)
        _db = _client[_settings.db_name]
        await ensure_indexes(_db)
    return _db
