from datetime import datetime
from typing import Optional

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from schemas.investment import CamelModel
from services.signatures import DocumentType, SignatureStatus


class DocumentSignatureView(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    application_id: str
    document_type: DocumentType
    status: SignatureStatus
    sequence: int
    notes: Optional[str] = None
    investor_signed_at: Optional[datetime] = None
    admin_signed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
