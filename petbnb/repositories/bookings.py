"""Booking repository - operaciones de base de datos para reservas"""

from typing import Any, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from ..utils import to_id, to_object_id


class BookingRepository:
    """Acceso a la colección ``bookings`` (y lectura de ``listings``)"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def insert(self, doc: dict[str, Any]) -> dict[str, Any]:
        res = await self.db.bookings.insert_one(doc)
        created = await self.db.bookings.find_one({"_id": res.inserted_id})
        return to_id(created)

    async def get(self, booking_id: str) -> Optional[dict[str, Any]]:
        doc = await self.db.bookings.find_one({"_id": to_object_id(booking_id, "booking_id")})
        return to_id(doc) if doc else None

    async def list_for_owner(self, owner_id: str, limit: int = 500) -> list[dict[str, Any]]:
        docs = await self.db.bookings.find({"pet_owner_id": owner_id}).sort("created_at", -1).to_list(limit)
        return [to_id(d) for d in docs]

    async def list_for_sitter(self, sitter_id: str, limit: int = 500) -> list[dict[str, Any]]:
        docs = await self.db.bookings.find({"pet_sitter_id": sitter_id}).sort("created_at", -1).to_list(limit)
        return [to_id(d) for d in docs]

    async def list_for_user(self, user_id: str, limit: int = 500) -> list[dict[str, Any]]:
        docs = await self.db.bookings.find({
            "$or": [{"pet_owner_id": user_id}, {"pet_sitter_id": user_id}]
        }).sort("start_date", 1).to_list(limit)
        return [to_id(d) for d in docs]

    async def update_status(
        self,
        booking_id: str,
        expected_status: str,
        updates: dict[str, Any],
    ) -> Optional[dict[str, Any]]:
        """
        Actualización condicional: solo se aplica si el estado guardado sigue
        siendo ``expected_status``. Devuelve None si otro escritor se adelantó
        (o la reserva no existe).
        """
        doc = await self.db.bookings.find_one_and_update(
            {"_id": to_object_id(booking_id, "booking_id"), "status": expected_status},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        return to_id(doc) if doc else None

    async def get_listing(self, listing_id: str) -> Optional[dict[str, Any]]:
        if not ObjectId.is_valid(listing_id):
            return None
        doc = await self.db.listings.find_one({"_id": ObjectId(listing_id)})
        return to_id(doc) if doc else None
