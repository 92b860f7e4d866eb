"""Notification inbox endpoints."""

from fastapi import APIRouter, Depends, Query

from appointment_hub.api.dependencies import get_notification_store
from appointment_hub.core.stores import NotificationStore
from appointment_hub.notifications.models import Audience, Notification

router = APIRouter(prefix="/notifications")


@router.get("/{audience}/{recipient_id}", response_model=list[Notification])
async def list_notifications(
    audience: Audience,
    recipient_id: str,
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=500),
    store: NotificationStore = Depends(get_notification_store),
) -> list[Notification]:
    """Most recent first."""
    items = await store.read_notifications(audience, recipient_id)
    if unread_only:
        items = [n for n in items if not n.read]
    return items[:limit]


@router.post("/{audience}/{notification_id}/read", response_model=Notification)
async def mark_read(
    audience: Audience,
    notification_id: str,
    store: NotificationStore = Depends(get_notification_store),
) -> Notification:
    return await store.update_flags(audience, notification_id, read=True)


@router.post("/{audience}/{recipient_id}/read-all")
async def mark_all_read(
    audience: Audience,
    recipient_id: str,
    store: NotificationStore = Depends(get_notification_store),
) -> dict:
    updated = await store.mark_all_read(audience, recipient_id)
    return {"success": True, "updated": updated}


@router.delete("/{audience}/{recipient_id}/all")
async def clear_notifications(
    audience: Audience,
    recipient_id: str,
    store: NotificationStore = Depends(get_notification_store),
) -> dict:
    removed = await store.clear(audience, recipient_id)
    return {"success": True, "removed": removed}


@router.delete("/{audience}/{notification_id}", response_model=Notification)
async def delete_notification(
    audience: Audience,
    notification_id: str,
    store: NotificationStore = Depends(get_notification_store),
) -> Notification:
    return await store.delete(audience, notification_id)
