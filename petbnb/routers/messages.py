from fastapi import APIRouter, Depends, Path, Query, status
from typing import List, Optional

from ..dependencies import get_chat_service
from ..errors import ActorNotAllowed
from ..schemas.message import (
    ConversationCreate,
    ConversationRole,
    ConversationOut,
    ConversationSummaryOut,
    MessageCreate,
    MessageOut,
)
from ..security import get_current_user
from ..services import ChatService
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

CONVERSATION_ID = Path(..., pattern=r"^[0-9a-fA-F]{24}$")


async def _get_own_conversation(chat: ChatService, conversation_id: str, current: dict) -> dict:
    conversation = await chat.get_conversation(conversation_id)
    if current["id"] not in conversation["participants"]:
        raise ActorNotAllowed("No participas en esta conversación")
    return conversation

@router.post("/conversations", response_model=ConversationOut)
async def open_conversation(
    payload: ConversationCreate,
    chat: ChatService = Depends(get_chat_service),
    current=Depends(get_current_user),
):
    """Obtiene (o crea) la conversación con otro usuario"""
    return await chat.get_or_create_conversation(current["id"], payload.other_user_id)

@router.get("/conversations", response_model=List[ConversationSummaryOut])
async def list_conversations(
    role: Optional[ConversationRole] = Query(None, description="Filtra por tu papel en la conversación"),
    chat: ChatService = Depends(get_chat_service),
    current=Depends(get_current_user),
):
    """Conversaciones con reserva en curso primero, luego por actividad reciente"""
    return await chat.list_conversations(current["id"], role=role)

@router.get("/conversations/{conversation_id}", response_model=List[MessageOut])
async def list_messages(
    conversation_id: str = CONVERSATION_ID,
    limit: int = Query(50, ge=1, le=200),
    chat: ChatService = Depends(get_chat_service),
    current=Depends(get_current_user),
):
    await _get_own_conversation(chat, conversation_id, current)
    return await chat.list_messages(conversation_id, limit=limit)

@router.post(
    "/conversations/{conversation_id}",
    response_model=MessageOut,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    payload: MessageCreate,
    conversation_id: str = CONVERSATION_ID,
    chat: ChatService = Depends(get_chat_service),
    current=Depends(get_current_user),
):
    return await chat.send_message(conversation_id, current["id"], payload.content.strip(), payload.metadata)

@router.patch("/conversations/{conversation_id}/read-all")
async def mark_conversation_read(
    conversation_id: str = CONVERSATION_ID,
    chat: ChatService = Depends(get_chat_service),
    current=Depends(get_current_user),
):
    """Marcar como leídos todos los mensajes recibidos en la conversación"""
    updated = await chat.mark_as_read(conversation_id, current["id"])
    return {"updated": updated}
