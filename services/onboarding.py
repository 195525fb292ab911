from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import settings
from database import AsyncSessionLocal
from models import Investment, InvestmentApplication
from schemas.investment import InvestmentCreate, InvestmentDetailsUpdate
from schemas.notification import NotificationMessage
from services.errors import FailureKind, WorkflowError
from services.notifications import DatabaseNotificationSink, NotificationSink, deliver
from services.state_machine import ActorRole, InvestmentStatus, is_terminal
from services.store import RecordStore

logger = structlog.get_logger(__name__)

# Commercial terms mirrored from the investment onto its application
_APPLICATION_FIELDS = {
    "amount": "investment_amount",
    "annual_percentage": "annual_percentage",
    "payment_frequency": "payment_frequency",
    "term_months": "term_months",
}


async def create_investment_application(
    session: AsyncSession,
    body: InvestmentCreate,
    sink: Optional[NotificationSink] = None,
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
) -> Investment:
    """
    Create the application and its investment, both `pending`, in one commit.
    The admin is told about the new application once the commit succeeded.
    """
    annual_percentage = body.annual_percentage or settings.default_annual_percentage
    payment_frequency = body.payment_frequency or settings.default_payment_frequency
    term_months = body.term_months or settings.default_term_months

    application = InvestmentApplication(
        id=f"app-{uuid.uuid4().hex[:12]}",
        user_id=body.user_id,
        status=InvestmentStatus.PENDING.value,
        investment_amount=body.amount,
        annual_percentage=annual_percentage,
        payment_frequency=payment_frequency,
        term_months=term_months,
        version=1,
    )
    investment = Investment(
        id=f"inv-{uuid.uuid4().hex[:12]}",
        application_id=application.id,
        user_id=body.user_id,
        amount=body.amount,
        annual_percentage=annual_percentage,
        payment_frequency=payment_frequency,
        term_months=term_months,
        status=InvestmentStatus.PENDING.value,
        version=1,
    )
    session.add(application)
    session.add(investment)
    await session.commit()
    await session.refresh(investment)
    logger.info("investment.created", investment_id=investment.id, application_id=application.id, amount=body.amount)

    message = NotificationMessage(
        recipient_id=settings.admin_recipient_id,
        subject="New investment application",
        body=f"A new application for ${body.amount:,} was submitted (investment {investment.id}).",
        related_investment_id=investment.id,
    )
    await deliver(sink or DatabaseNotificationSink(session_factory), message, session_factory)
    return investment


async def update_investment_details(
    session: AsyncSession,
    investment_id: str,
    body: InvestmentDetailsUpdate,
) -> Investment:
    """
    Admin-only edit of commercial terms. Not a workflow transition: status is untouched,
    but the write is still conditional on `version` and mirrored onto the application.
    Raises WorkflowError.
    """
    store = RecordStore(session)
    try:
        if ActorRole(body.actor_role) is not ActorRole.ADMIN:
            raise WorkflowError(FailureKind.WRONG_ACTOR, "Only the admin can edit investment details.")
        investment = await store.get(Investment, investment_id)
        if investment is None:
            raise WorkflowError(FailureKind.NOT_FOUND)
        if is_terminal(investment.status):
            raise WorkflowError(FailureKind.ALREADY_TERMINAL)

        changes = body.changes()
        if changes:
            await store.conditional_update(Investment, investment.id, investment.version, changes)
            application = await store.get(InvestmentApplication, investment.application_id)
            if application is not None:
                await store.conditional_update(
                    InvestmentApplication,
                    application.id,
                    application.version,
                    {_APPLICATION_FIELDS[k]: v for k, v in changes.items()},
                )
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    await store.refresh(investment)
    logger.info("investment.details_updated", investment_id=investment_id, fields=sorted(changes))
    return investment
