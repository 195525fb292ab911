from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models import Notification
from schemas.notification import NotificationView, UnreadCount

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("/{recipient_id}", response_model=list[NotificationView])
async def list_notifications(
    recipient_id: str,
    limit: int = Query(50, ge=1, le=200),
    unread_only: bool = Query(False, alias="unreadOnly"),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(Notification).where(Notification.recipient_id == recipient_id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    result = await db.execute(stmt.order_by(Notification.created_at.desc()).limit(limit))
    return [NotificationView.model_validate(n) for n in result.scalars().all()]


@router.get("/{recipient_id}/unread-count", response_model=UnreadCount)
async def unread_count(recipient_id: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.recipient_id == recipient_id, Notification.is_read.is_(False))
    )
    return UnreadCount(recipient_id=recipient_id, unread=result.scalar_one())


@router.post("/{notification_id}/read", response_model=NotificationView)
async def mark_read(notification_id: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Notification).where(Notification.id == notification_id))
    notification = result.scalar_one_or_none()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    notification.is_read = True
    await db.flush()
    return NotificationView.model_validate(notification)


@router.post("/{recipient_id}/read-all", response_model=UnreadCount)
async def mark_all_read(recipient_id: str, db: AsyncSession = Depends(get_db)):
    await db.execute(
        update(Notification)
        .where(Notification.recipient_id == recipient_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    await db.flush()
    return UnreadCount(recipient_id=recipient_id, unread=0)
