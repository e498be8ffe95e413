from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from .care_request import CareRequestType

class ActivityCreate(BaseModel):
    activity_type: CareRequestType
    activity_title: str = Field(..., min_length=1, max_length=120)
    activity_description: Optional[str] = Field(None, max_length=2000)
    activity_detail: Optional[str] = Field(None, max_length=200, description="e.g. '30 min around the park'")
    image_urls: List[str] = []
    activity_timestamp: Optional[datetime] = None

class ActivityOut(BaseModel):
    id: str
    booking_id: str
    pet_owner_id: str
    pet_sitter_id: str
    activity_type: CareRequestType
    activity_title: str
    activity_description: Optional[str] = None
    activity_detail: Optional[str] = None
    image_urls: List[str] = []
    activity_timestamp: datetime
    is_visible: bool = True
    created_at: datetime

class ActivityStatsOut(BaseModel):
    walk: int = 0
    feed: int = 0
    play: int = 0
    total: int = 0
