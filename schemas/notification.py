from datetime import datetime
from typing import Optional

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from schemas.investment import CamelModel


class NotificationMessage(CamelModel):
    """What a transition asks the sink to deliver; never read back by the workflow."""

    recipient_id: str
    subject: str
    body: str
    related_investment_id: Optional[str] = None


class NotificationView(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    recipient_id: str
    subject: str
    body: str
    related_investment_id: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None


class UnreadCount(CamelModel):
    recipient_id: str
    unread: int
