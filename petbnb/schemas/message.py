from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime
from typing import Any, Dict, List, Optional

class ConversationRole(str, Enum):
    owner  = "owner"
    sitter = "sitter"

class ConversationCreate(BaseModel):
    other_user_id: str = Field(..., description="The other participant of the conversation")

class ConversationOut(BaseModel):
    id: str
    participants: List[str]
    pet_owner_id: Optional[str] = None
    pet_sitter_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)
    metadata: Optional[Dict[str, Any]] = None

class MessageOut(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    content: str
    metadata: Optional[Dict[str, Any]] = None
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime

class ConversationSummaryOut(ConversationOut):
    last_message: Optional[MessageOut] = None
    unread_count: int = 0
    has_current_booking: bool = False
