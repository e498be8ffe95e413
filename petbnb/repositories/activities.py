"""Activity repository - diario de paseos/comidas/juegos que registra el cuidador"""

from datetime import datetime
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from ..utils import to_id, to_object_id


class ActivityRepository:
    """Acceso a la colección ``pet_activities``. Ocultar es ``is_visible = False``, no se borra."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def insert(self, doc: dict[str, Any]) -> dict[str, Any]:
        res = await self.db.pet_activities.insert_one(doc)
        created = await self.db.pet_activities.find_one({"_id": res.inserted_id})
        return to_id(created)

    async def list_for_booking(
        self,
        booking_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 500,
    ) -> list[dict[str, Any]]:
        query: dict[str, Any] = {"booking_id": booking_id, "is_visible": True}
        if start is not None or end is not None:
            query["activity_timestamp"] = {}
            if start is not None:
                query["activity_timestamp"]["$gte"] = start
            if end is not None:
                query["activity_timestamp"]["$lt"] = end
        docs = await self.db.pet_activities.find(query).sort("activity_timestamp", -1).to_list(limit)
        return [to_id(d) for d in docs]

    async def visible_types(self, booking_id: str) -> list[str]:
        docs = await self.db.pet_activities.find(
            {"booking_id": booking_id, "is_visible": True},
            {"activity_type": 1},
        ).to_list(1000)
        return [d["activity_type"] for d in docs]

    async def hide(self, booking_id: str, activity_id: str) -> Optional[dict[str, Any]]:
        doc = await self.db.pet_activities.find_one_and_update(
            {"_id": to_object_id(activity_id, "activity_id"), "booking_id": booking_id},
            {"$set": {"is_visible": False}},
            return_document=ReturnDocument.AFTER,
        )
        return to_id(doc) if doc else None
