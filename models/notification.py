from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func

from database import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(64), primary_key=True, index=True)
    recipient_id = Column(String(64), nullable=False, index=True)
    subject = Column(String(256), nullable=False)
    body = Column(Text, nullable=False)
    related_investment_id = Column(String(64), nullable=True, index=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class PendingNotification(Base):
    """Outbox row for a notification whose delivery failed after its transition committed."""

    __tablename__ = "pending_notifications"

    id = Column(String(64), primary_key=True, index=True)
    recipient_id = Column(String(64), nullable=False)
    subject = Column(String(256), nullable=False)
    body = Column(Text, nullable=False)
    related_investment_id = Column(String(64), nullable=True, index=True)
    attempts = Column(Integer, nullable=False, default=1)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
