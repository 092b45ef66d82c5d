from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from medilink.repositories.base import Store
from medilink.repositories.sql import get_store
from medilink.core.principal import Principal
from medilink.core.security import get_current_principal
from medilink.services import notifications as notification_service

router = APIRouter(prefix="/api/notifications", tags=["notifications"])

class NotificationResponse(BaseModel):
    id: int
    sender_id: int
    sender_type: str
    receiver_id: int
    receiver_type: str
    type: str
    message: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UnreadCountResponse(BaseModel):
    count: int

@router.get("", response_model=List[NotificationResponse])
async def get_notifications(
    principal: Principal = Depends(get_current_principal),
    store: Store = Depends(get_store)
):
    return notification_service.list_for(store, principal)

@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    principal: Principal = Depends(get_current_principal),
    store: Store = Depends(get_store)
):
    return {"count": notification_service.unread_count(store, principal)}

@router.patch("/read-all")
async def mark_all_notifications_read(
    principal: Principal = Depends(get_current_principal),
    store: Store = Depends(get_store)
):
    notification_service.mark_all_read(store, principal)
    return {"message": "All notifications marked as read"}

@router.patch("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int,
    principal: Principal = Depends(get_current_principal),
    store: Store = Depends(get_store)
):
    notification_service.mark_read(store, principal, notification_id)
    return {"message": "Notification marked as read"}
