from models.document_signature import DocumentSignature
from models.investment import Investment, InvestmentApplication
from models.notification import Notification, PendingNotification

__all__ = [
    "DocumentSignature",
    "Investment",
    "InvestmentApplication",
    "Notification",
    "PendingNotification",
]
