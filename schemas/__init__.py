from schemas.document_signature import DocumentSignatureView
from schemas.investment import (
    ActionPayload,
    ActionRequest,
    DispatchResult,
    Failure,
    InvestmentCreate,
    InvestmentDetailsUpdate,
    InvestmentView,
)
from schemas.notification import NotificationMessage, NotificationView, UnreadCount

__all__ = [
    "ActionPayload",
    "ActionRequest",
    "DispatchResult",
    "DocumentSignatureView",
    "Failure",
    "InvestmentCreate",
    "InvestmentDetailsUpdate",
    "InvestmentView",
    "NotificationMessage",
    "NotificationView",
    "UnreadCount",
]
