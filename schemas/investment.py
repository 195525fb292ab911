from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from services.errors import FailureKind
from services.state_machine import (
    Action,
    ActorRole,
    InvestmentStatus,
    available_actions,
    awaiting_actor,
    progress_percentage,
    required_next_action,
    stage_label,
)

PaymentFrequency = Literal["monthly", "quarterly", "annual"]


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input; serializes camelCase for the frontend."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InvestmentCreate(CamelModel):
    user_id: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)
    annual_percentage: Optional[float] = Field(None, gt=0)
    payment_frequency: Optional[PaymentFrequency] = None
    term_months: Optional[int] = Field(None, gt=0)


class InvestmentDetailsUpdate(CamelModel):
    """Admin edit of commercial terms; not a workflow transition."""

    actor_role: ActorRole
    amount: Optional[int] = Field(None, gt=0)
    annual_percentage: Optional[float] = Field(None, gt=0)
    payment_frequency: Optional[PaymentFrequency] = None
    term_months: Optional[int] = Field(None, gt=0)

    def changes(self) -> dict:
        return self.model_dump(exclude={"actor_role"}, exclude_none=True)


class ActionPayload(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    notes: Optional[str] = None
    reason: Optional[str] = None


class ActionRequest(CamelModel):
    actor_role: ActorRole
    action: Action
    payload: Optional[ActionPayload] = None


class InvestmentView(CamelModel):
    id: str
    application_id: str
    user_id: str
    amount: int
    annual_percentage: float
    payment_frequency: str
    term_months: int
    status: InvestmentStatus
    application_status: Optional[str] = None
    version: int
    stage: str
    progress_percentage: int
    awaiting_actor: Optional[ActorRole] = None
    required_next_action: str
    # What the awaiting actor can do next, decline included
    available_actions: list[Action] = []
    activated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(
        cls, investment, application_status: Optional[str] = None, note_investor_signed: bool = False
    ) -> "InvestmentView":
        """`note_investor_signed` is the latest promissory note's progress; it only matters while the note is out."""
        status = InvestmentStatus(investment.status)
        actor = awaiting_actor(status, note_investor_signed)
        return cls(
            id=investment.id,
            application_id=investment.application_id,
            user_id=investment.user_id,
            amount=investment.amount,
            annual_percentage=investment.annual_percentage,
            payment_frequency=investment.payment_frequency,
            term_months=investment.term_months,
            status=status,
            application_status=application_status,
            version=investment.version,
            stage=stage_label(status),
            progress_percentage=progress_percentage(status),
            awaiting_actor=actor,
            required_next_action=required_next_action(status, note_investor_signed),
            available_actions=available_actions(status, actor, note_investor_signed) if actor else [],
            activated_at=investment.activated_at,
            created_at=investment.created_at,
            updated_at=investment.updated_at,
        )


class DispatchResult(CamelModel):
    investment: InvestmentView
    required_next_action: str
    notified: bool = False

    @classmethod
    def for_investment(cls, view: InvestmentView, notified: bool = False) -> "DispatchResult":
        return cls(investment=view, required_next_action=view.required_next_action, notified=notified)


class Failure(CamelModel):
    kind: FailureKind
    message: str
