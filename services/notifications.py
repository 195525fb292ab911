"""
Notification sink, per-transition messages, and the retry outbox.

Delivery is best-effort and happens after the transition has committed: a
failed send is logged and parked in `pending_notifications`, never raised back
into the workflow.
"""
from __future__ import annotations

import asyncio
import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import settings
from database import AsyncSessionLocal
from models import Investment, Notification, PendingNotification
from schemas.notification import NotificationMessage
from services.state_machine import Action, ActorRole

logger = structlog.get_logger(__name__)


class NotificationSink:
    """Delivers one message to one recipient. Raises on failure."""

    async def send(
        self, recipient_id: str, subject: str, body: str, related_id: Optional[str] = None
    ) -> None:
        raise NotImplementedError


class DatabaseNotificationSink(NotificationSink):
    """Writes in-app notifications in a transaction of its own."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
        timeout: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.timeout = timeout if timeout is not None else settings.notification_timeout_seconds

    async def send(
        self, recipient_id: str, subject: str, body: str, related_id: Optional[str] = None
    ) -> None:
        await asyncio.wait_for(self._write(recipient_id, subject, body, related_id), timeout=self.timeout)

    async def _write(self, recipient_id: str, subject: str, body: str, related_id: Optional[str]) -> None:
        async with self.session_factory() as session:
            session.add(
                Notification(
                    id=f"ntf-{uuid.uuid4().hex[:12]}",
                    recipient_id=recipient_id,
                    subject=subject,
                    body=body,
                    related_investment_id=related_id,
                    is_read=False,
                )
            )
            await session.commit()


def counterparty_of(actor: ActorRole, investment: Investment, admin_recipient_id: Optional[str] = None) -> str:
    if ActorRole(actor) is ActorRole.ADMIN:
        return investment.user_id
    return admin_recipient_id or settings.admin_recipient_id


def build_transition_message(
    investment: Investment,
    action: Action,
    actor: ActorRole,
    payload_notes: Optional[str] = None,
    decline_reason: Optional[str] = None,
    admin_recipient_id: Optional[str] = None,
) -> NotificationMessage:
    """Message telling the other party what the transition now requires of them."""
    ref = f"investment {investment.id} (${investment.amount:,})"
    action = Action(action)
    if action is Action.SIGN_SUBSCRIPTION:
        subject = "Subscription agreement signed"
        body = f"The investor signed the subscription agreement for {ref}. Review it and send the promissory note."
    elif action is Action.SEND_PROMISSORY_NOTE:
        subject = "Promissory note ready to sign"
        body = f"Your subscription agreement was approved. Please sign the promissory note for {ref}."
        if payload_notes:
            body += f"\n\nNotes from the team: {payload_notes}"
    elif action is Action.SIGN_PROMISSORY_INVESTOR:
        subject = "Promissory note signed by investor"
        body = f"The investor signed the promissory note for {ref}. It is ready for your countersignature."
    elif action is Action.SIGN_PROMISSORY_ADMIN:
        subject = "Wire details now required"
        body = f"Your promissory note for {ref} has been countersigned. Please confirm your wire transfer details."
    elif action is Action.CONFIRM_WIRE_DETAILS:
        subject = "Wire transfer confirmed"
        body = f"The investor confirmed the wire transfer for {ref}. Verify that the funds were received."
    elif action is Action.VERIFY_FUNDS:
        subject = "Funds received"
        body = f"We received your funds for {ref}. Please link your bank account to receive payments."
    elif action is Action.LINK_BANK_ACCOUNT:
        subject = "Bank account linked"
        body = f"The investor linked a bank account for {ref}. The investment is ready to activate."
    elif action is Action.ACTIVATE:
        subject = "Your investment is active"
        body = f"Onboarding is complete and {ref} is now active."
    else:
        subject = "Investment declined"
        body = f"Your {ref} was declined. You may start a new application at any time."
        if decline_reason:
            body += f"\n\nReason: {decline_reason}"
    return NotificationMessage(
        recipient_id=counterparty_of(actor, investment, admin_recipient_id),
        subject=subject,
        body=body,
        related_investment_id=investment.id,
    )


async def deliver(
    sink: NotificationSink,
    message: NotificationMessage,
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
) -> bool:
    """One delivery attempt; on failure the message is parked for out-of-band retry."""
    try:
        await sink.send(message.recipient_id, message.subject, message.body, message.related_investment_id)
    except Exception as exc:
        logger.warning(
            "notification.failed",
            recipient_id=message.recipient_id,
            related_investment_id=message.related_investment_id,
            error=repr(exc),
        )
        await _queue_for_retry(message, repr(exc), session_factory)
        return False
    logger.info(
        "notification.sent",
        recipient_id=message.recipient_id,
        related_investment_id=message.related_investment_id,
        subject=message.subject,
    )
    return True


async def _queue_for_retry(
    message: NotificationMessage, error: str, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    try:
        async with session_factory() as session:
            session.add(
                PendingNotification(
                    id=f"pnd-{uuid.uuid4().hex[:12]}",
                    recipient_id=message.recipient_id,
                    subject=message.subject,
                    body=message.body,
                    related_investment_id=message.related_investment_id,
                    attempts=1,
                    last_error=error,
                )
            )
            await session.commit()
    except Exception as exc:
        # The transition already committed; losing the outbox row only loses the retry
        logger.error(
            "notification.outbox_failed",
            recipient_id=message.recipient_id,
            related_investment_id=message.related_investment_id,
            error=repr(exc),
        )


async def retry_pending_notifications(
    sink: NotificationSink,
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
    max_attempts: Optional[int] = None,
) -> tuple[int, int]:
    """
    Redeliver parked notifications. Delivered rows are removed; failures bump `attempts`.
    Rows at `max_attempts` are left for manual inspection. Returns (delivered, failed).
    """
    max_attempts = max_attempts or settings.notification_max_attempts
    delivered = failed = 0
    async with session_factory() as session:
        result = await session.execute(
            select(PendingNotification)
            .where(PendingNotification.attempts < max_attempts)
            .order_by(PendingNotification.created_at)
        )
        for row in result.scalars().all():
            try:
                await sink.send(row.recipient_id, row.subject, row.body, row.related_investment_id)
            except Exception as exc:
                row.attempts += 1
                row.last_error = repr(exc)
                failed += 1
                logger.warning("notification.retry_failed", pending_id=row.id, attempts=row.attempts, error=repr(exc))
                continue
            await session.delete(row)
            delivered += 1
        await session.commit()
    logger.info("notification.retry_complete", delivered=delivered, failed=failed)
    return delivered, failed
