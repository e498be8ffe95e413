"""
Peticiones de cuidado ("mándame una foto del paseo/la comida/el juego").

Un dueño no puede repetir la misma petición para la misma reserva antes de
15 minutos. La última petición se toma de dos fuentes:
  - el registro persistido (``care_requests``), que sobrevive a recargas;
  - la caché en memoria del proceso, que se actualiza en cuanto se envía.
Se usa siempre la más reciente de las dos (ver ``resolve_last_request_at``).
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Optional

from ..errors import ActorNotAllowed, CareRequestOnCooldown, MessageDeliveryError, PetBNBError
from ..repositories import CareRequestRepository
from ..schemas.care_request import CareRequestType
from ..utils import Clock, as_naive_utc, utcnow
from .chat import ChatService

logger = logging.getLogger(__name__)

COOLDOWN = timedelta(minutes=15)

REQUEST_SUBJECTS = {
    CareRequestType.walk: "the walk",
    CareRequestType.feed: "feeding time",
    CareRequestType.play: "playtime",
}


def care_request_message(request_type: CareRequestType) -> str:
    return f"Could you please share a photo of {REQUEST_SUBJECTS[request_type]}?"


def resolve_last_request_at(
    persisted: Optional[datetime],
    cached: Optional[datetime],
) -> Optional[datetime]:
    """La más reciente de las dos marcas de tiempo, o la que exista."""
    if persisted is None:
        return cached
    if cached is None:
        return persisted
    return max(as_naive_utc(persisted), as_naive_utc(cached))


def remaining_cooldown(last_request_at: Optional[datetime], now: datetime) -> timedelta:
    if last_request_at is None:
        return timedelta(0)
    elapsed = as_naive_utc(now) - as_naive_utc(last_request_at)
    return max(COOLDOWN - elapsed, timedelta(0))


class CooldownCache:
    """Marcas de tiempo en memoria por (booking_id, tipo). No se comparte entre procesos."""

    def __init__(self):
        self._last: dict[tuple[str, CareRequestType], datetime] = {}

    def get(self, booking_id: str, request_type: CareRequestType) -> Optional[datetime]:
        return self._last.get((booking_id, CareRequestType(request_type)))

    def record(self, booking_id: str, request_type: CareRequestType, at: datetime) -> None:
        key = (booking_id, CareRequestType(request_type))
        previous = self._last.get(key)
        if previous is None or at > previous:
            self._last[key] = at


class CooldownGuard:
    def __init__(
        self,
        care_requests: CareRequestRepository,
        chat: ChatService,
        cache: CooldownCache,
        clock: Clock = utcnow,
    ):
        self.care_requests = care_requests
        self.chat = chat
        self.cache = cache
        self.clock = clock

    async def last_request_at(self, booking_id: str, request_type: CareRequestType) -> Optional[datetime]:
        request_type = CareRequestType(request_type)
        entry = await self.care_requests.latest(booking_id, request_type.value)
        persisted = entry["created_at"] if entry else None
        return resolve_last_request_at(persisted, self.cache.get(booking_id, request_type))

    async def is_on_cooldown(
        self,
        booking_id: str,
        request_type: CareRequestType,
        now: Optional[datetime] = None,
    ) -> bool:
        last = await self.last_request_at(booking_id, request_type)
        return remaining_cooldown(last, now or self.clock()) > timedelta(0)

    async def remaining_cooldown_minutes(
        self,
        booking_id: str,
        request_type: CareRequestType,
        now: Optional[datetime] = None,
    ) -> int:
        last = await self.last_request_at(booking_id, request_type)
        remaining = remaining_cooldown(last, now or self.clock())
        return math.ceil(remaining / timedelta(minutes=1))

    async def cooldown_status(self, booking_id: str, now: Optional[datetime] = None) -> list[dict[str, Any]]:
        now = now or self.clock()
        status = []
        for request_type in CareRequestType:
            minutes = await self.remaining_cooldown_minutes(booking_id, request_type, now)
            status.append({
                "request_type": request_type,
                "on_cooldown": minutes > 0,
                "remaining_minutes": minutes,
            })
        return status

    async def list_care_requests(self, booking_id: str) -> list[dict[str, Any]]:
        return await self.care_requests.list_for_booking(booking_id)

    async def issue_care_request(
        self,
        booking: dict[str, Any],
        request_type: CareRequestType,
        actor_owner_id: str,
    ) -> dict[str, Any]:
        request_type = CareRequestType(request_type)
        if booking["pet_owner_id"] != actor_owner_id:
            raise ActorNotAllowed("Solo el dueño puede pedir actualizaciones")

        now = self.clock()
        minutes = await self.remaining_cooldown_minutes(booking["id"], request_type, now)
        if minutes > 0:
            logger.warning(
                f"Care request {request_type.value} for booking {booking['id']} blocked, {minutes} min left"
            )
            raise CareRequestOnCooldown(
                f"Ya has pedido esto hace poco. Espera {minutes} min.", remaining_minutes=minutes
            )

        # El registro solo se escribe si el mensaje se ha enviado
        try:
            conversation = await self.chat.get_or_create_owner_conversation(
                booking["pet_owner_id"], booking["pet_sitter_id"]
            )
            message = await self.chat.send_message(
                conversation["id"],
                actor_owner_id,
                care_request_message(request_type),
                metadata={"type": "care_request", "request_type": request_type.value, "booking_id": booking["id"]},
            )
        except PetBNBError as e:
            logger.error(f"Care request {request_type.value} for booking {booking['id']} failed: {e.detail}")
            if isinstance(e, MessageDeliveryError):
                raise
            raise MessageDeliveryError(f"No se pudo enviar la petición: {e.detail}") from e

        entry = await self.care_requests.insert({
            "booking_id": booking["id"],
            "pet_owner_id": booking["pet_owner_id"],
            "pet_sitter_id": booking["pet_sitter_id"],
            "request_type": request_type.value,
            "conversation_id": conversation["id"],
            "message_id": message["id"],
            "created_at": now,
        })
        self.cache.record(booking["id"], request_type, now)
        logger.info(f"Care request {request_type.value} issued for booking {booking['id']}")
        return entry
