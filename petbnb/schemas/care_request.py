from pydantic import BaseModel
from enum import Enum
from datetime import datetime

class CareRequestType(str, Enum):
    walk = "walk"
    feed = "feed"
    play = "play"

class CareRequestCreate(BaseModel):
    request_type: CareRequestType

class CareRequestOut(BaseModel):
    id: str
    booking_id: str
    pet_owner_id: str
    pet_sitter_id: str
    request_type: CareRequestType
    conversation_id: str
    message_id: str
    created_at: datetime

class CooldownOut(BaseModel):
    request_type: CareRequestType
    on_cooldown: bool
    remaining_minutes: int
