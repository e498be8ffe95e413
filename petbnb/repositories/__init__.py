from .activities import ActivityRepository
from .bookings import BookingRepository
from .care_requests import CareRequestRepository

__all__ = ["ActivityRepository", "BookingRepository", "CareRequestRepository"]
