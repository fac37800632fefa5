"""Conversation and message routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from bazaar.api.deps import Principal, get_services, require_user
from bazaar.api.schemas import ConversationResponse, MessageResponse
from bazaar.container import Services

router = APIRouter(prefix="/api/conversations", tags=["chat"])


class ConversationCreate(BaseModel):
    product_id: str
    user1_id: Optional[str] = None
    user2_id: Optional[str] = None


class MessageCreate(BaseModel):
    text: Optional[str] = None
    message_type: str = "text"
    content: Optional[dict] = None


class ReadResponse(BaseModel):
    updated: int


@router.post("", response_model=ConversationResponse)
async def create_conversation(
    data: ConversationCreate,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    """Find or open the conversation between two users about a product."""
    return await services.chat.get_or_create_conversation(
        data.product_id, data.user1_id, data.user2_id, requester_id=user.user_id
    )


@router.get("", response_model=List[ConversationResponse])
async def list_conversations(
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    return await services.chat.list_conversations(user.user_id)


@router.get("/{conversation_id}/messages", response_model=List[MessageResponse])
async def get_messages(
    conversation_id: str,
    limit: int = Query(200, ge=1, le=500),
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    return await services.chat.get_messages(conversation_id, user.user_id, limit=limit)


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    conversation_id: str,
    data: MessageCreate,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    return await services.chat.send_message(
        conversation_id, user.user_id, data.text, data.message_type, data.content
    )


@router.post("/{conversation_id}/read", response_model=ReadResponse)
async def mark_read(
    conversation_id: str,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    return ReadResponse(updated=await services.chat.mark_read(conversation_id, user.user_id))
