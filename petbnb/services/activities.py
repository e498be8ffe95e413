"""
Diario de actividades del cuidador (walk/feed/play), que es como se
responde a las peticiones de cuidado del dueño.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from ..errors import ActivityNotFound, ActorNotAllowed, InvalidBooking
from ..repositories import ActivityRepository
from ..schemas.booking import BookingStatus
from ..schemas.care_request import CareRequestType
from ..utils import Clock, as_naive_utc, utcnow

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = {BookingStatus.confirmed.value, BookingStatus.in_progress.value}


class ActivityService:
    def __init__(self, activities: ActivityRepository, clock: Clock = utcnow):
        self.activities = activities
        self.clock = clock

    def _require_sitter(self, booking: dict[str, Any], actor_id: str) -> None:
        if booking["pet_sitter_id"] != actor_id:
            raise ActorNotAllowed("Solo el cuidador puede registrar actividades")

    async def log_activity(
        self,
        booking: dict[str, Any],
        sitter_actor_id: str,
        activity_type: CareRequestType,
        activity_title: str,
        activity_description: Optional[str] = None,
        activity_detail: Optional[str] = None,
        image_urls: Optional[list[str]] = None,
        activity_timestamp: Optional[datetime] = None,
    ) -> dict[str, Any]:
        self._require_sitter(booking, sitter_actor_id)
        if booking["status"] not in ACTIVE_STATUSES:
            raise InvalidBooking("Solo se registran actividades en reservas confirmadas o en curso")

        now = self.clock()
        entry = await self.activities.insert({
            "booking_id": booking["id"],
            "pet_owner_id": booking["pet_owner_id"],
            "pet_sitter_id": booking["pet_sitter_id"],
            "activity_type": CareRequestType(activity_type).value,
            "activity_title": activity_title,
            "activity_description": activity_description,
            "activity_detail": activity_detail,
            "image_urls": list(image_urls or []),
            "activity_timestamp": as_naive_utc(activity_timestamp) if activity_timestamp else now,
            "is_visible": True,
            "created_at": now,
        })
        logger.info(f"Activity {entry['activity_type']} logged for booking {booking['id']}")
        return entry

    async def list_activities(self, booking_id: str, day: Optional[date] = None) -> list[dict[str, Any]]:
        """Actividades visibles, la más reciente primero; con ``day``, solo las de ese día (UTC)."""
        if day is None:
            return await self.activities.list_for_booking(booking_id)
        start = datetime.combine(day, time.min)
        return await self.activities.list_for_booking(booking_id, start, start + timedelta(days=1))

    async def activity_stats(self, booking_id: str) -> dict[str, int]:
        types = await self.activities.visible_types(booking_id)
        stats = {t.value: types.count(t.value) for t in CareRequestType}
        stats["total"] = len(types)
        return stats

    async def hide_activity(self, booking: dict[str, Any], activity_id: str, sitter_actor_id: str) -> dict[str, Any]:
        self._require_sitter(booking, sitter_actor_id)
        hidden = await self.activities.hide(booking["id"], activity_id)
        if hidden is None:
            raise ActivityNotFound("Actividad no encontrada")
        return hidden
