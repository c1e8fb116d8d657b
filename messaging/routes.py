"""
Messaging API Routes

- POST /messages                          send a message as the caller
- GET  /messages/unread-count             full recount of the caller's unread messages
- GET  /messages/{counterpart_id}         conversation, oldest first
- POST /messages/{counterpart_id}/read    mark counterpart -> caller messages read
- GET  /conversations                     derived conversation list
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

import services
from models.schemas import ConversationOut, CurrentUser, MarkReadResult, MessageCreate, MessageOut
from utils.auth_utils import auth_user

router = APIRouter(tags=["messaging"])


@router.post("/messages", response_model=MessageOut, status_code=201)
async def send_message(payload: MessageCreate, user: CurrentUser = Depends(auth_user)):
    return await services.messaging_service.send_message(user.id, payload.receiver_id, payload.content)


@router.get("/messages/unread-count")
async def unread_count(user: CurrentUser = Depends(auth_user)):
    return {"unread": await services.messaging_service.unread_count(user.id)}


@router.get("/messages/{counterpart_id}", response_model=List[MessageOut])
async def get_conversation(
    counterpart_id: str,
    limit: Optional[int] = Query(default=None),
    user: CurrentUser = Depends(auth_user),
):
    return await services.messaging_service.get_conversation(user.id, counterpart_id, limit)


@router.post("/messages/{counterpart_id}/read", response_model=MarkReadResult)
async def mark_as_read(counterpart_id: str, user: CurrentUser = Depends(auth_user)):
    return await services.messaging_service.mark_as_read(counterpart_id, user.id, actor_id=user.id)


@router.get("/conversations", response_model=List[ConversationOut])
async def list_conversations(user: CurrentUser = Depends(auth_user)):
    return await services.messaging_service.list_conversations(user.id)
