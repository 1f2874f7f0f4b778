"""
Notification Routes

GET /notifications - My notifications, newest first
PUT /notifications/{notification_id}/read - Mark as read
DELETE /notifications/{notification_id} - Delete
"""

from fastapi import APIRouter, Depends
from typing import List

from placement_engine.core.auth import get_current_user
from placement_engine.db import get_record_store
from placement_engine.db.store import RecordStore
from placement_engine.services.notification_service import NotificationService
from placement_engine.schemas.schemas import MessageResponse, Notification

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[Notification])
def list_notifications(
    user: dict = Depends(get_current_user),
    store: RecordStore = Depends(get_record_store)
):
    return NotificationService(store).list_for(user["user_id"])


@router.put("/{notification_id}/read", response_model=MessageResponse)
def mark_read(
    notification_id: str,
    user: dict = Depends(get_current_user),
    store: RecordStore = Depends(get_record_store)
):
    NotificationService(store).mark_read(user["user_id"], notification_id)
    return MessageResponse(message="Notification marked as read")


@router.delete("/{notification_id}", response_model=MessageResponse)
def delete_notification(
    notification_id: str,
    user: dict = Depends(get_current_user),
    store: RecordStore = Depends(get_record_store)
):
    NotificationService(store).delete(user["user_id"], notification_id)
    return MessageResponse(message="Notification deleted")
