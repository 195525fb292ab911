"""
Document signature coordinator.

Tracks signature progress of one document type within one application,
independently of the investment's status label. Records are append-only per
(application_id, document_type): a new record supersedes the prior live one and
the highest `sequence` is the latest.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import structlog

from models import DocumentSignature
from services.errors import FailureKind, WorkflowError
from services.store import RecordStore

logger = structlog.get_logger(__name__)


class DocumentType(str, Enum):
    SUBSCRIPTION_AGREEMENT = "subscription_agreement"
    PROMISSORY_NOTE = "promissory_note"


class SignatureStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    INVESTOR_SIGNED = "investor_signed"
    ADMIN_SIGNED = "admin_signed"
    SIGNED = "signed"
    SUPERSEDED = "superseded"


LIVE_STATUSES = frozenset({SignatureStatus.PENDING, SignatureStatus.SENT, SignatureStatus.INVESTOR_SIGNED})
AWAITING_INVESTOR = frozenset({SignatureStatus.PENDING, SignatureStatus.SENT})
INVESTOR_SIGNED_OR_LATER = frozenset(
    {SignatureStatus.INVESTOR_SIGNED, SignatureStatus.ADMIN_SIGNED, SignatureStatus.SIGNED}
)
COMPLETED = frozenset({SignatureStatus.ADMIN_SIGNED, SignatureStatus.SIGNED})


def is_live(signature: Optional[DocumentSignature]) -> bool:
    return signature is not None and SignatureStatus(signature.status) in LIVE_STATUSES


class DocumentSignatureCoordinator:
    def __init__(self, store: RecordStore):
        self.store = store

    async def latest_for(
        self, application_id: str, document_type: DocumentType
    ) -> Optional[DocumentSignature]:
        rows = await self.store.query(
            DocumentSignature,
            filters={"application_id": application_id, "document_type": DocumentType(document_type).value},
            order_by=[DocumentSignature.sequence.desc()],
            limit=1,
        )
        return rows[0] if rows else None

    async def history_for(
        self, application_id: str, document_type: Optional[DocumentType] = None
    ) -> list[DocumentSignature]:
        filters = {"application_id": application_id}
        if document_type is not None:
            filters["document_type"] = DocumentType(document_type).value
        return await self.store.query(
            DocumentSignature,
            filters=filters,
            order_by=[DocumentSignature.document_type, DocumentSignature.sequence],
        )

    async def note_investor_signed(self, application_id: str) -> bool:
        """Whether the current promissory note awaits only the admin's countersignature."""
        note = await self.latest_for(application_id, DocumentType.PROMISSORY_NOTE)
        return note is not None and SignatureStatus(note.status) is SignatureStatus.INVESTOR_SIGNED

    async def supersede_live(self, application_id: str) -> list[DocumentSignature]:
        """Retire every live document of the application, e.g. when the investment is declined."""
        live = await self.store.query(
            DocumentSignature,
            filters={"application_id": application_id},
            order_by=[DocumentSignature.document_type, DocumentSignature.sequence],
        )
        live = [s for s in live if is_live(s)]
        for signature in live:
            await self.store.compare_and_set_status(
                DocumentSignature,
                signature.id,
                [signature.status],
                {"status": SignatureStatus.SUPERSEDED.value},
            )
            logger.info(
                "signature.superseded",
                signature_id=signature.id,
                application_id=application_id,
                document_type=signature.document_type,
            )
        return live

    async def create_or_replace(
        self,
        application_id: str,
        document_type: DocumentType,
        notes: Optional[str] = None,
        initial_status: SignatureStatus = SignatureStatus.SENT,
    ) -> DocumentSignature:
        """
        Supersede the live record for the key (if any) and append a fresh one.
        The unique (application, type, sequence) key turns a lost race into a ConflictError.
        """
        document_type = DocumentType(document_type)
        latest = await self.latest_for(application_id, document_type)
        if latest is not None and is_live(latest):
            await self.store.compare_and_set_status(
                DocumentSignature,
                latest.id,
                [latest.status],
                {"status": SignatureStatus.SUPERSEDED.value},
            )
            logger.info(
                "signature.superseded",
                signature_id=latest.id,
                application_id=application_id,
                document_type=document_type.value,
            )
        signature = DocumentSignature(
            id=f"sig-{uuid.uuid4().hex[:12]}",
            application_id=application_id,
            document_type=document_type.value,
            status=SignatureStatus(initial_status).value,
            sequence=(latest.sequence + 1) if latest is not None else 1,
            notes=notes,
        )
        await self.store.add(signature)
        logger.info(
            "signature.created",
            signature_id=signature.id,
            application_id=application_id,
            document_type=document_type.value,
            sequence=signature.sequence,
        )
        return signature

    async def record_investor_signature(self, signature_id: str) -> DocumentSignature:
        signature = await self._load(signature_id)
        status = SignatureStatus(signature.status)
        if status in INVESTOR_SIGNED_OR_LATER:
            raise WorkflowError(FailureKind.ALREADY_SIGNED, "The investor already signed this document.")
        if status is SignatureStatus.SUPERSEDED:
            raise WorkflowError(FailureKind.INVALID_TRANSITION, "This document was replaced by a newer version.")
        await self.store.compare_and_set_status(
            DocumentSignature,
            signature.id,
            [status.value],
            {
                "status": SignatureStatus.INVESTOR_SIGNED.value,
                "investor_signed_at": datetime.now(timezone.utc),
            },
        )
        return await self.store.refresh(signature)

    async def record_admin_signature(self, signature_id: str) -> DocumentSignature:
        """Countersign; only meaningful once the investor has signed. Never creates a record."""
        signature = await self._load(signature_id)
        status = SignatureStatus(signature.status)
        if status in COMPLETED:
            raise WorkflowError(FailureKind.ALREADY_SIGNED, "This document was already countersigned.")
        if status in AWAITING_INVESTOR:
            raise WorkflowError(FailureKind.NOT_YET_INVESTOR_SIGNED)
        if status is SignatureStatus.SUPERSEDED:
            raise WorkflowError(FailureKind.INVALID_TRANSITION, "This document was replaced by a newer version.")
        await self.store.compare_and_set_status(
            DocumentSignature,
            signature.id,
            [SignatureStatus.INVESTOR_SIGNED.value],
            {
                "status": SignatureStatus.SIGNED.value,
                "admin_signed_at": datetime.now(timezone.utc),
            },
        )
        return await self.store.refresh(signature)

    async def _load(self, signature_id: str) -> DocumentSignature:
        signature = await self.store.get(DocumentSignature, signature_id)
        if signature is None:
            raise WorkflowError(FailureKind.NOT_FOUND, "Document signature not found.")
        return signature
