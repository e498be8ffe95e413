"""
Chat service - conversaciones dueño↔cuidador y envío de mensajes.

Una conversación queda identificada por el par NO ordenado de participantes
(``participants_key``), así que pedirla dos veces con los mismos usuarios,
en cualquier orden, devuelve siempre la misma.
"""

import logging
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..errors import ActorNotAllowed, ConversationNotFound, MessageDeliveryError
from ..utils import Clock, to_id, to_object_id, utcnow

logger = logging.getLogger(__name__)


def participants_key(party_a: str, party_b: str) -> str:
    return "|".join(sorted((party_a, party_b)))


class ChatService:
    def __init__(self, db: AsyncIOMotorDatabase, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    async def get_or_create_conversation(
        self,
        party_a: str,
        party_b: str,
        roles: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        if party_a == party_b:
            raise ActorNotAllowed("No puedes abrir una conversación contigo mismo")

        key = participants_key(party_a, party_b)
        now = self.clock()
        on_insert: dict[str, Any] = {
            "participants": sorted((party_a, party_b)),
            "created_at": now,
            "updated_at": now,
        }
        if roles:
            on_insert.update(roles)

        try:
            doc = await self.db.conversations.find_one_and_update(
                {"participants_key": key},
                {"$setOnInsert": on_insert},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # Dos upserts simultáneos: el otro ganó, leemos el suyo
            doc = await self.db.conversations.find_one({"participants_key": key})

        if roles and "pet_owner_id" not in doc:
            # Conversación abierta sin roles: se completan la primera vez que se conocen
            await self.db.conversations.update_one(
                {"_id": doc["_id"], "pet_owner_id": {"$exists": False}},
                {"$set": roles},
            )
            doc.update(roles)

        logger.info(f"Conversation {doc['_id']} ready for {key}")
        return to_id(doc)

    async def get_or_create_owner_conversation(self, owner_id: str, sitter_id: str) -> dict[str, Any]:
        """Variante con roles explícitos: guarda quién es el dueño y quién el cuidador."""
        return await self.get_or_create_conversation(
            owner_id,
            sitter_id,
            roles={"pet_owner_id": owner_id, "pet_sitter_id": sitter_id},
        )

    async def get_conversation(self, conversation_id: str) -> dict[str, Any]:
        doc = await self.db.conversations.find_one({"_id": to_object_id(conversation_id, "conversation_id")})
        if not doc:
            raise ConversationNotFound("Conversación no encontrada")
        return to_id(doc)

    async def send_message(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        try:
            conversation = await self.get_conversation(conversation_id)
        except PyMongoError as e:
            raise MessageDeliveryError(f"No se pudo enviar el mensaje: {e}") from e
        if sender_id not in conversation["participants"]:
            raise ActorNotAllowed("No participas en esta conversación")

        now = self.clock()
        data: dict[str, Any] = {
            "conversation_id": conversation["id"],
            "sender_id": sender_id,
            "content": content,
            "is_read": False,
            "created_at": now,
        }
        if metadata:
            data["metadata"] = metadata

        try:
            res = await self.db.messages.insert_one(data)
            created = await self.db.messages.find_one({"_id": res.inserted_id})
        except PyMongoError as e:
            raise MessageDeliveryError(f"No se pudo enviar el mensaje: {e}") from e

        # El mensaje ya está guardado: si falla el orden de la lista solo se avisa
        try:
            await self.db.conversations.update_one(
                {"_id": to_object_id(conversation["id"])},
                {"$set": {"updated_at": now}},
            )
        except PyMongoError as e:
            logger.warning(f"Could not bump updated_at of conversation {conversation['id']}: {e}")

        logger.info(f"Message {res.inserted_id} sent in conversation {conversation['id']}")
        return to_id(created)

    async def mark_as_read(self, conversation_id: str, reader_id: str) -> int:
        """Marca como leídos los mensajes que el otro participante envió a ``reader_id``"""
        conversation = await self.get_conversation(conversation_id)
        if reader_id not in conversation["participants"]:
            raise ActorNotAllowed("No participas en esta conversación")
        result = await self.db.messages.update_many(
            {
                "conversation_id": conversation["id"],
                "sender_id": {"$ne": reader_id},
                "is_read": False,
            },
            {"$set": {"is_read": True, "read_at": self.clock()}},
        )
        return result.modified_count

    async def list_messages(self, conversation_id: str, limit: int = 50) -> list[dict[str, Any]]:
        items = []
        async for doc in self.db.messages.find({"conversation_id": conversation_id}).sort("created_at", 1).limit(limit):
            items.append(to_id(doc))
        return items

    async def _has_current_booking(self, conversation: dict[str, Any]) -> bool:
        a, b = conversation["participants"]
        today = self.clock().replace(hour=0, minute=0, second=0, microsecond=0)
        found = await self.db.bookings.count_documents({
            "$or": [
                {"pet_owner_id": a, "pet_sitter_id": b},
                {"pet_owner_id": b, "pet_sitter_id": a},
            ],
            "status": {"$in": ["confirmed", "in_progress"]},
            "end_date": {"$gte": today},
        })
        return found > 0

    async def list_conversations(self, user_id: str, role: Optional[str] = None) -> list[dict[str, Any]]:
        """
        Conversaciones del usuario con su último mensaje y mensajes sin leer.

        ``role`` ("owner" / "sitter") filtra por el papel del usuario en la
        conversación. Las que tienen una reserva en curso o por venir
        (confirmed / in_progress) van arriba; el resto, por actividad reciente.
        """
        if role == "owner":
            query: dict[str, Any] = {"pet_owner_id": user_id}
        elif role == "sitter":
            query = {"pet_sitter_id": user_id}
        else:
            query = {"participants": user_id}

        conversations = []
        async for conv in self.db.conversations.find(query).sort("updated_at", -1):
            conv = to_id(conv)
            last = await (
                self.db.messages.find({"conversation_id": conv["id"]})
                .sort("created_at", -1)
                .limit(1)
                .to_list(1)
            )
            conv["last_message"] = to_id(last[0]) if last else None
            conv["unread_count"] = await self.db.messages.count_documents({
                "conversation_id": conv["id"],
                "sender_id": {"$ne": user_id},
                "is_read": False,
            })
            conv["has_current_booking"] = await self._has_current_booking(conv)
            conversations.append(conv)

        # sort estable: dentro de cada grupo se mantiene el orden por updated_at
        conversations.sort(key=lambda c: not c["has_current_booking"])
        return conversations
