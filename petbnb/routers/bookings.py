# petbnb/routers/bookings.py
from fastapi import APIRouter, Depends, Path, Query, Request, status
from datetime import date
from typing import List, Optional

from ..config import get_settings
from ..errors import ActorNotAllowed
from ..dependencies import get_activity_service, get_booking_service, get_cooldown_guard
from ..schemas.booking import (
    BookingCategory,
    AcceptBody,
    BookingCreate,
    BookingOut,
    BookingTabsOut,
    DeclineBody,
    ReasonPatch,
    TransitionOut,
)
from ..schemas.activity import ActivityCreate, ActivityOut, ActivityStatsOut
from ..schemas.care_request import CareRequestCreate, CareRequestOut, CooldownOut
from ..security import get_current_user
from ..services import ActivityService, BookingService, CooldownGuard, TransitionResult
from ..middleware.rate_limit import apply_rate_limit
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

BOOKING_ID = Path(..., pattern=r"^[0-9a-fA-F]{24}$")


def _transition_out(result: TransitionResult) -> dict:
    return {
        "booking": result.booking,
        "notification_sent": result.notification_sent,
        "notification_error": result.notification_error,
    }


async def _get_visible_booking(service: BookingService, booking_id: str, current: dict) -> dict:
    b = await service.get_booking(booking_id)
    if current["id"] not in (b["pet_owner_id"], b["pet_sitter_id"]):
        raise ActorNotAllowed("Sin acceso a esta reserva")
    return b

# ---------- Consultas ----------

@router.get("/mine", response_model=List[BookingOut])
async def list_my_bookings(
    service: BookingService = Depends(get_booking_service),
    current=Depends(get_current_user),
):
    return await service.list_bookings_for_user(current["id"])

@router.get("/tabs", response_model=BookingTabsOut)
async def booking_tabs(
    service: BookingService = Depends(get_booking_service),
    current=Depends(get_current_user),
):
    """Reservas agrupadas en pestañas current/upcoming/past"""
    groups = await service.booking_tabs(current["id"])
    return {
        "current": groups[BookingCategory.current],
        "upcoming": groups[BookingCategory.upcoming],
        "past": groups[BookingCategory.past],
        "counts": {c: len(items) for c, items in groups.items()},
    }

@router.get("/{booking_id}", response_model=BookingOut)
async def get_booking(
    booking_id: str = BOOKING_ID,
    service: BookingService = Depends(get_booking_service),
    current=Depends(get_current_user),
):
    return await _get_visible_booking(service, booking_id, current)

# ---------- Ciclo de vida ----------

@router.post("", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: Request,
    payload: BookingCreate,
    service: BookingService = Depends(get_booking_service),
    current=Depends(get_current_user),
):
    apply_rate_limit(request, get_settings().booking_rate_limit, "bookings:create", current["id"])
    return await service.create_booking(
        listing_id=payload.listing_id,
        owner_id=current["id"],
        sitter_id=payload.sitter_id,
        pet_ids=payload.pet_ids,
        start_date=payload.start_date,
        end_date=payload.end_date,
        special_requests=payload.special_requests,
        total_price=payload.total_price,
    )

@router.post("/{booking_id}/accept", response_model=TransitionOut)
async def accept_booking(
    body: AcceptBody,
    booking_id: str = BOOKING_ID,
    service: BookingService = Depends(get_booking_service),
    current=Depends(get_current_user),
):
    result = await service.accept_booking(booking_id, current["id"], body.conversation_id)
    return _transition_out(result)

@router.post("/{booking_id}/decline", response_model=TransitionOut)
async def decline_booking(
    body: DeclineBody,
    booking_id: str = BOOKING_ID,
    service: BookingService = Depends(get_booking_service),
    current=Depends(get_current_user),
):
    result = await service.decline_booking(booking_id, current["id"], body.conversation_id, body.reason)
    return _transition_out(result)

@router.post("/{booking_id}/cancel", response_model=BookingOut)
async def cancel_booking(
    body: ReasonPatch,
    booking_id: str = BOOKING_ID,
    service: BookingService = Depends(get_booking_service),
    current=Depends(get_current_user),
):
    return await service.cancel_booking(booking_id, current["id"], body.reason)

@router.post("/{booking_id}/start", response_model=BookingOut)
async def start_booking(
    booking_id: str = BOOKING_ID,
    service: BookingService = Depends(get_booking_service),
    current=Depends(get_current_user),
):
    return await service.start_booking(booking_id, current["id"])

@router.post("/{booking_id}/complete", response_model=BookingOut)
async def complete_booking(
    booking_id: str = BOOKING_ID,
    service: BookingService = Depends(get_booking_service),
    current=Depends(get_current_user),
):
    return await service.complete_booking(booking_id, current["id"])

# ---------- Peticiones de cuidado ----------

@router.post(
    "/{booking_id}/care-requests",
    response_model=CareRequestOut,
    status_code=status.HTTP_201_CREATED,
)
async def issue_care_request(
    request: Request,
    payload: CareRequestCreate,
    booking_id: str = BOOKING_ID,
    service: BookingService = Depends(get_booking_service),
    guard: CooldownGuard = Depends(get_cooldown_guard),
    current=Depends(get_current_user),
):
    apply_rate_limit(request, get_settings().care_request_rate_limit, "care-requests:create", current["id"])
    booking = await service.get_booking(booking_id)
    return await guard.issue_care_request(booking, payload.request_type, current["id"])

@router.get("/{booking_id}/care-requests", response_model=List[CareRequestOut])
async def list_care_requests(
    booking_id: str = BOOKING_ID,
    service: BookingService = Depends(get_booking_service),
    guard: CooldownGuard = Depends(get_cooldown_guard),
    current=Depends(get_current_user),
):
    await _get_visible_booking(service, booking_id, current)
    return await guard.list_care_requests(booking_id)

@router.get("/{booking_id}/care-requests/cooldown", response_model=List[CooldownOut])
async def care_request_cooldown(
    booking_id: str = BOOKING_ID,
    service: BookingService = Depends(get_booking_service),
    guard: CooldownGuard = Depends(get_cooldown_guard),
    current=Depends(get_current_user),
):
    """Estado de los botones walk/feed/play para esta reserva"""
    await _get_visible_booking(service, booking_id, current)
    return await guard.cooldown_status(booking_id)

# ---------- Diario de actividades ----------

@router.post(
    "/{booking_id}/activities",
    response_model=ActivityOut,
    status_code=status.HTTP_201_CREATED,
)
async def log_activity(
    payload: ActivityCreate,
    booking_id: str = BOOKING_ID,
    service: BookingService = Depends(get_booking_service),
    activities: ActivityService = Depends(get_activity_service),
    current=Depends(get_current_user),
):
    booking = await service.get_booking(booking_id)
    return await activities.log_activity(booking, current["id"], **payload.model_dump())

@router.get("/{booking_id}/activities", response_model=List[ActivityOut])
async def list_activities(
    booking_id: str = BOOKING_ID,
    day: Optional[date] = Query(None, description="Solo las actividades de este día (YYYY-MM-DD)"),
    service: BookingService = Depends(get_booking_service),
    activities: ActivityService = Depends(get_activity_service),
    current=Depends(get_current_user),
):
    await _get_visible_booking(service, booking_id, current)
    return await activities.list_activities(booking_id, day)

@router.get("/{booking_id}/activities/stats", response_model=ActivityStatsOut)
async def activity_stats(
    booking_id: str = BOOKING_ID,
    service: BookingService = Depends(get_booking_service),
    activities: ActivityService = Depends(get_activity_service),
    current=Depends(get_current_user),
):
    await _get_visible_booking(service, booking_id, current)
    return await activities.activity_stats(booking_id)

@router.delete("/{booking_id}/activities/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def hide_activity(
    booking_id: str = BOOKING_ID,
    activity_id: str = Path(..., pattern=r"^[0-9a-fA-F]{24}$"),
    service: BookingService = Depends(get_booking_service),
    activities: ActivityService = Depends(get_activity_service),
    current=Depends(get_current_user),
):
    """Oculta la actividad (no se borra del diario)"""
    booking = await service.get_booking(booking_id)
    await activities.hide_activity(booking, activity_id, current["id"])
    return None
