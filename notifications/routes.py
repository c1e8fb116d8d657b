from fastapi import APIRouter, Depends, Query

import services
from models.schemas import CurrentUser, NotificationList, NotificationOut
from utils.auth_utils import auth_user

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationList)
async def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    user: CurrentUser = Depends(auth_user),
):
    repo = services.notification_repository
    items = await repo.list_for_recipient(user.id, unread_only=unread_only, limit=limit)
    return NotificationList(items=items, unread=await repo.count_unread(user.id))


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_notification_read(notification_id: int, user: CurrentUser = Depends(auth_user)):
    return await services.notification_repository.mark_read(notification_id, user.id)
