from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime
from typing import List, Optional

class BookingStatus(str, Enum):
    pending     = "pending"
    confirmed   = "confirmed"
    in_progress = "in_progress"
    completed   = "completed"
    cancelled   = "cancelled"

class BookingCategory(str, Enum):
    current  = "current"
    upcoming = "upcoming"
    past     = "past"

class BookingCreate(BaseModel):
    listing_id: str
    sitter_id: str
    pet_ids: List[str] = Field(..., min_length=1)
    start_date: datetime
    end_date: datetime
    special_requests: Optional[str] = None
    total_price: Optional[int] = Field(None, ge=0, description="Minor currency units (cents)")

class BookingOut(BaseModel):
    id: str
    listing_id: str
    pet_owner_id: str
    pet_sitter_id: str
    pet_ids: List[str]
    start_date: datetime
    end_date: datetime
    status: BookingStatus
    total_price: Optional[int] = None
    special_requests: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

class ReasonPatch(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)

class AcceptBody(BaseModel):
    conversation_id: str

class DeclineBody(ReasonPatch):
    conversation_id: str

class TransitionOut(BaseModel):
    booking: BookingOut
    notification_sent: bool
    notification_error: Optional[str] = None

class BookingTabsOut(BaseModel):
    current: List[BookingOut]
    upcoming: List[BookingOut]
    past: List[BookingOut]
    counts: dict[BookingCategory, int]
