"""Care request repository - registro append-only de peticiones de foto"""

from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from ..utils import to_id


class CareRequestRepository:
    """Acceso a la colección ``care_requests``. Nunca se actualiza ni se borra."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def insert(self, doc: dict[str, Any]) -> dict[str, Any]:
        res = await self.db.care_requests.insert_one(doc)
        created = await self.db.care_requests.find_one({"_id": res.inserted_id})
        return to_id(created)

    async def latest(self, booking_id: str, request_type: str) -> Optional[dict[str, Any]]:
        docs = await (
            self.db.care_requests.find({"booking_id": booking_id, "request_type": request_type})
            .sort("created_at", -1)
            .limit(1)
            .to_list(1)
        )
        return to_id(docs[0]) if docs else None

    async def list_for_booking(self, booking_id: str, limit: int = 200) -> list[dict[str, Any]]:
        docs = await self.db.care_requests.find({"booking_id": booking_id}).sort("created_at", -1).to_list(limit)
        return [to_id(d) for d in docs]
