from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func

from database import Base


class DocumentSignature(Base):
    __tablename__ = "document_signatures"
    __table_args__ = (
        # Two writers racing to supersede the same key cannot both claim the next sequence
        UniqueConstraint("application_id", "document_type", "sequence", name="uq_document_signature_sequence"),
    )

    id = Column(String(64), primary_key=True, index=True)
    application_id = Column(
        String(64), ForeignKey("investment_applications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    document_type = Column(String(32), nullable=False, index=True)
    status = Column(String(32), nullable=False, default="sent")
    sequence = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    investor_signed_at = Column(DateTime(timezone=True), nullable=True)
    admin_signed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
