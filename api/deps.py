from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database import AsyncSessionLocal
from services.notifications import DatabaseNotificationSink, NotificationSink


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Factory for work outside the request transaction (notifications, outbox)."""
    return AsyncSessionLocal


def get_notification_sink(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> NotificationSink:
    return DatabaseNotificationSink(session_factory)
