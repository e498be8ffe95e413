"""
Booking service - ciclo de vida de una reserva.

Estados: pending → confirmed | cancelled
         confirmed → in_progress | completed | cancelled
         in_progress → completed | cancelled
completed y cancelled son terminales.

Aceptar o rechazar una reserva pendiente son sagas de dos pasos:
(1) cambio de estado persistido y (2) mensaje automático en el chat.
Si (2) falla, (1) NO se revierte: se devuelve un TransitionResult con
``notification_error`` para que el llamador lo muestre.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Optional

from pymongo.errors import PyMongoError

from ..errors import (
    ActorNotAllowed,
    BookingNotFound,
    InvalidBooking,
    InvalidTransition,
    PetBNBError,
)
from ..repositories import BookingRepository
from ..schemas.booking import BookingCategory, BookingStatus
from ..utils import Clock, as_naive_utc, format_date_range, utcnow
from .chat import ChatService

logger = logging.getLogger(__name__)

ALLOWED: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.pending: {BookingStatus.confirmed, BookingStatus.cancelled},
    BookingStatus.confirmed: {BookingStatus.in_progress, BookingStatus.cancelled, BookingStatus.completed},
    BookingStatus.in_progress: {BookingStatus.completed, BookingStatus.cancelled},
    BookingStatus.completed: set(),
    BookingStatus.cancelled: set(),
}

TERMINAL = {BookingStatus.completed, BookingStatus.cancelled}

# Marca de tiempo que se rellena al entrar en cada estado
_TIMESTAMP_FIELD = {
    BookingStatus.confirmed: "confirmed_at",
    BookingStatus.cancelled: "cancelled_at",
    BookingStatus.completed: "completed_at",
}


@dataclass
class TransitionResult:
    booking: dict[str, Any]
    message: Optional[dict[str, Any]] = None
    notification_error: Optional[str] = None

    @property
    def notification_sent(self) -> bool:
        return self.message is not None

    @property
    def degraded(self) -> bool:
        """El estado cambió pero el aviso por chat no llegó."""
        return self.notification_error is not None


def _day(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def categorize_booking(booking: dict[str, Any], today: date) -> BookingCategory:
    """
    Pestaña en la que se muestra una reserva. El orden de las comprobaciones
    (past > current > upcoming) garantiza que cada reserva cae exactamente en
    una pestaña.
    """
    status = BookingStatus(booking["status"])
    start = _day(booking["start_date"])
    end = _day(booking["end_date"])

    if status in TERMINAL or end < today:
        return BookingCategory.past
    if status in (BookingStatus.confirmed, BookingStatus.in_progress) and start <= today <= end:
        return BookingCategory.current
    # pending, confirmed futura, o in_progress cuyo inicio aún no ha llegado
    return BookingCategory.upcoming


def group_bookings(bookings: Iterable[dict[str, Any]], today: date) -> dict[BookingCategory, list[dict[str, Any]]]:
    groups: dict[BookingCategory, list[dict[str, Any]]] = {c: [] for c in BookingCategory}
    for b in bookings:
        groups[categorize_booking(b, today)].append(b)
    return groups


def acceptance_message(booking: dict[str, Any], listing_title: str) -> str:
    return (
        "Great news! Your booking request has been accepted!\n\n"
        f"Dates: {format_date_range(booking['start_date'], booking['end_date'])}\n"
        f"Service: {listing_title}\n\n"
        "Looking forward to caring for your pet!"
    )


def decline_message(booking: dict[str, Any], reason: Optional[str]) -> str:
    text = (
        "Sorry, I'm unable to accept your booking request for "
        f"{format_date_range(booking['start_date'], booking['end_date'])}."
    )
    if reason:
        text += f"\n\nReason: {reason}"
    return text


class BookingService:
    def __init__(self, bookings: BookingRepository, chat: ChatService, clock: Clock = utcnow):
        self.bookings = bookings
        self.chat = chat
        self.clock = clock

    # ---------- Lectura ----------

    async def get_booking(self, booking_id: str) -> dict[str, Any]:
        booking = await self.bookings.get(booking_id)
        if not booking:
            raise BookingNotFound("Reserva no encontrada")
        return booking

    async def list_bookings_for_owner(self, owner_id: str) -> list[dict[str, Any]]:
        return await self.bookings.list_for_owner(owner_id)

    async def list_bookings_for_sitter(self, sitter_id: str) -> list[dict[str, Any]]:
        return await self.bookings.list_for_sitter(sitter_id)

    async def list_bookings_for_user(self, user_id: str) -> list[dict[str, Any]]:
        return await self.bookings.list_for_user(user_id)

    async def booking_tabs(self, user_id: str) -> dict[BookingCategory, list[dict[str, Any]]]:
        bookings = await self.bookings.list_for_user(user_id)
        return group_bookings(bookings, self.clock().date())

    # ---------- Creación ----------

    async def create_booking(
        self,
        listing_id: str,
        owner_id: str,
        sitter_id: str,
        pet_ids: list[str],
        start_date: datetime,
        end_date: datetime,
        special_requests: Optional[str] = None,
        total_price: Optional[int] = None,
    ) -> dict[str, Any]:
        start_date = as_naive_utc(start_date)
        end_date = as_naive_utc(end_date)
        if start_date >= end_date:
            raise InvalidBooking("end_date debe ser posterior a start_date")
        if not pet_ids:
            raise InvalidBooking("Selecciona al menos una mascota")
        if owner_id == sitter_id:
            raise InvalidBooking("No puedes reservar contigo mismo")

        doc = {
            "listing_id": listing_id,
            "pet_owner_id": owner_id,
            "pet_sitter_id": sitter_id,
            "pet_ids": list(pet_ids),
            "start_date": start_date,
            "end_date": end_date,
            "status": BookingStatus.pending.value,
            "total_price": total_price,
            "special_requests": special_requests or None,
            "cancellation_reason": None,
            "created_at": self.clock(),
            "confirmed_at": None,
            "cancelled_at": None,
            "completed_at": None,
        }
        created = await self.bookings.insert(doc)
        logger.info(f"Booking {created['id']} created by owner {owner_id} for sitter {sitter_id}")
        return created

    # ---------- Transiciones ----------

    def _check_transition(self, booking: dict[str, Any], new: BookingStatus) -> BookingStatus:
        old = BookingStatus(booking["status"])
        if new not in ALLOWED[old]:
            logger.warning(f"Rejected transition {old.value} → {new.value} on booking {booking['id']}")
            raise InvalidTransition(f"Transición no permitida: {old.value} → {new.value}")
        return old

    async def _apply(
        self,
        booking: dict[str, Any],
        old: BookingStatus,
        new: BookingStatus,
        extra: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        updates: dict[str, Any] = {"status": new.value}
        if new in _TIMESTAMP_FIELD:
            updates[_TIMESTAMP_FIELD[new]] = self.clock()
        if extra:
            updates.update(extra)

        updated = await self.bookings.update_status(booking["id"], old.value, updates)
        if updated is None:
            # Otra sesión cambió el estado entre nuestra lectura y la escritura
            logger.warning(f"Booking {booking['id']} changed concurrently; {old.value} → {new.value} lost")
            raise InvalidTransition("La reserva ha cambiado de estado, recarga e inténtalo de nuevo")
        logger.info(f"Booking {booking['id']} transitioned: {old.value} → {new.value}")
        return updated

    def _require_sitter(self, booking: dict[str, Any], actor_id: str) -> None:
        if booking["pet_sitter_id"] != actor_id:
            logger.warning(f"User {actor_id} is not the sitter of booking {booking['id']}")
            raise ActorNotAllowed("Solo el cuidador puede responder a esta reserva")

    async def _require_booking_conversation(self, booking: dict[str, Any], conversation_id: str) -> None:
        conversation = await self.chat.get_conversation(conversation_id)
        expected = {booking["pet_owner_id"], booking["pet_sitter_id"]}
        if set(conversation["participants"]) != expected:
            raise ActorNotAllowed("La conversación no corresponde a esta reserva")

    async def _notify(
        self,
        booking: dict[str, Any],
        conversation_id: str,
        sender_id: str,
        content: str,
        kind: str,
    ) -> TransitionResult:
        try:
            message = await self.chat.send_message(
                conversation_id,
                sender_id,
                content,
                metadata={"type": kind, "booking_id": booking["id"]},
            )
        except (PetBNBError, PyMongoError) as e:
            # El cambio de estado ya está guardado: éxito degradado, no fallo total
            detail = e.detail if isinstance(e, PetBNBError) else f"No se pudo enviar el aviso: {e}"
            logger.error(
                f"Booking {booking['id']} is {booking['status']} but the notification failed: {detail}",
                exc_info=True,
            )
            return TransitionResult(booking=booking, notification_error=detail)
        return TransitionResult(booking=booking, message=message)

    async def accept_booking(self, booking_id: str, sitter_actor_id: str, conversation_id: str) -> TransitionResult:
        booking = await self.get_booking(booking_id)
        self._require_sitter(booking, sitter_actor_id)
        old = self._check_transition(booking, BookingStatus.confirmed)
        if old != BookingStatus.pending:
            raise InvalidTransition("Solo se pueden aceptar reservas pendientes")
        await self._require_booking_conversation(booking, conversation_id)

        listing = await self.bookings.get_listing(booking["listing_id"])
        title = (listing or {}).get("title") or "Pet sitting"

        updated = await self._apply(booking, old, BookingStatus.confirmed)
        return await self._notify(
            updated, conversation_id, sitter_actor_id, acceptance_message(updated, title), "booking_accepted"
        )

    async def decline_booking(
        self,
        booking_id: str,
        sitter_actor_id: str,
        conversation_id: str,
        reason: Optional[str] = None,
    ) -> TransitionResult:
        booking = await self.get_booking(booking_id)
        self._require_sitter(booking, sitter_actor_id)
        old = self._check_transition(booking, BookingStatus.cancelled)
        if old != BookingStatus.pending:
            raise InvalidTransition("Solo se pueden rechazar reservas pendientes")
        await self._require_booking_conversation(booking, conversation_id)

        reason = reason or None
        updated = await self._apply(booking, old, BookingStatus.cancelled, {"cancellation_reason": reason})
        return await self._notify(
            updated, conversation_id, sitter_actor_id, decline_message(updated, reason), "booking_declined"
        )

    async def cancel_booking(self, booking_id: str, actor_id: str, reason: Optional[str] = None) -> dict[str, Any]:
        booking = await self.get_booking(booking_id)
        if actor_id not in (booking["pet_owner_id"], booking["pet_sitter_id"]):
            raise ActorNotAllowed("Sin acceso a esta reserva")
        old = self._check_transition(booking, BookingStatus.cancelled)
        return await self._apply(booking, old, BookingStatus.cancelled, {"cancellation_reason": reason or None})

    async def start_booking(self, booking_id: str, sitter_actor_id: str) -> dict[str, Any]:
        booking = await self.get_booking(booking_id)
        self._require_sitter(booking, sitter_actor_id)
        old = self._check_transition(booking, BookingStatus.in_progress)
        return await self._apply(booking, old, BookingStatus.in_progress)

    async def complete_booking(self, booking_id: str, sitter_actor_id: str) -> dict[str, Any]:
        booking = await self.get_booking(booking_id)
        self._require_sitter(booking, sitter_actor_id)
        old = self._check_transition(booking, BookingStatus.completed)
        return await self._apply(booking, old, BookingStatus.completed)
