from .activities import ActivityService
from .bookings import BookingService, TransitionResult, categorize_booking, group_bookings
from .care_requests import CooldownCache, CooldownGuard, resolve_last_request_at
from .chat import ChatService

__all__ = [
    "ActivityService",
    "BookingService",
    "TransitionResult",
    "categorize_booking",
    "group_bookings",
    "CooldownCache",
    "CooldownGuard",
    "resolve_last_request_at",
    "ChatService",
]
