from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from database import Base


class InvestmentApplication(Base):
    __tablename__ = "investment_applications"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    # Mirrors the linked investment's status until funding; deleted/rejected/active are one-way
    status = Column(String(32), nullable=False, default="pending", index=True)
    investment_amount = Column(Integer, nullable=False)
    annual_percentage = Column(Float, nullable=False)
    payment_frequency = Column(String(16), nullable=False)
    term_months = Column(Integer, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    investment = relationship("Investment", back_populates="application", uselist=False)


class Investment(Base):
    __tablename__ = "investments"

    id = Column(String(64), primary_key=True, index=True)
    application_id = Column(
        String(64), ForeignKey("investment_applications.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    user_id = Column(String(64), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    annual_percentage = Column(Float, nullable=False)
    payment_frequency = Column(String(16), nullable=False)
    term_months = Column(Integer, nullable=False)
    status = Column(String(32), nullable=False, default="pending", index=True)
    # Optimistic-concurrency token; bumped on every write
    version = Column(Integer, nullable=False, default=1)
    activated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    application = relationship("InvestmentApplication", back_populates="investment")
