"""
Single entry point for investor and admin actions.

dispatch() loads the investment, rejects terminal investments and the wrong
actor, runs the document coordinator for document-bearing actions, then checks
the transition table. It writes the investment and mirrored application status
with conditional updates in one transaction, commits, then notifies the
counterparty. Any policy or conflict failure rolls the transaction back and comes
back as a typed Failure.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Union

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database import AsyncSessionLocal
from models import Investment, InvestmentApplication
from schemas.investment import ActionPayload, DispatchResult, Failure, InvestmentView
from services.errors import FailureKind, WorkflowError
from services.notifications import DatabaseNotificationSink, NotificationSink, build_transition_message, deliver
from services.signatures import DocumentSignatureCoordinator, DocumentType, SignatureStatus
from services.state_machine import (
    APPLICATION_TERMINAL_STATUSES,
    Action,
    ActorRole,
    InvestmentStatus,
    application_status_for,
    transition,
)
from services.store import RecordStore

logger = structlog.get_logger(__name__)

DispatchOutcome = Union[DispatchResult, Failure]


async def investment_view(
    store: RecordStore, investment: Investment, application_status: Optional[str] = None
) -> InvestmentView:
    """View of `investment` whose next step reflects the promissory note's signature progress."""
    note_investor_signed = False
    if investment.status == InvestmentStatus.PROMISSORY_NOTE_PENDING.value:
        note_investor_signed = await DocumentSignatureCoordinator(store).note_investor_signed(
            investment.application_id
        )
    return InvestmentView.from_record(investment, application_status, note_investor_signed)


class ActionDispatcher:
    def __init__(
        self,
        session: AsyncSession,
        sink: Optional[NotificationSink] = None,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
        admin_recipient_id: Optional[str] = None,
    ):
        self.session = session
        self.session_factory = session_factory
        self.store = RecordStore(session)
        self.signatures = DocumentSignatureCoordinator(self.store)
        self.sink = sink or DatabaseNotificationSink(session_factory)
        self.admin_recipient_id = admin_recipient_id

    async def dispatch(
        self,
        investment_id: str,
        actor_role: ActorRole,
        action: Action,
        payload: Optional[ActionPayload] = None,
    ) -> DispatchOutcome:
        # Unknown roles or actions fail here with ValueError, before anything is read
        actor_role = ActorRole(actor_role)
        action = Action(action)
        payload = payload or ActionPayload()
        log = logger.bind(investment_id=investment_id, actor=actor_role.value, action=action.value)

        try:
            investment, application_status = await self._apply(investment_id, actor_role, action, payload)
        except WorkflowError as exc:
            await self.session.rollback()
            log.info("dispatch.rejected", kind=exc.kind.value, reason=exc.message)
            return Failure(kind=exc.kind, message=exc.message)
        except Exception:
            await self.session.rollback()
            log.exception("dispatch.failed")
            raise

        log.info("dispatch.applied", status=investment.status, version=investment.version)
        view = await investment_view(self.store, investment, application_status)
        message = build_transition_message(
            investment,
            action,
            actor_role,
            payload_notes=payload.notes,
            decline_reason=payload.reason,
            admin_recipient_id=self.admin_recipient_id,
        )
        notified = await deliver(self.sink, message, self.session_factory)
        return DispatchResult.for_investment(view, notified=notified)

    async def _apply(
        self, investment_id: str, actor_role: ActorRole, action: Action, payload: ActionPayload
    ) -> tuple[Investment, Optional[str]]:
        investment = await self.store.get(Investment, investment_id)
        if investment is None:
            raise WorkflowError(FailureKind.NOT_FOUND)

        outcome = transition(InvestmentStatus(investment.status), action, actor_role)
        if outcome.rejection in (FailureKind.ALREADY_TERMINAL, FailureKind.WRONG_ACTOR):
            raise WorkflowError(outcome.rejection, outcome.reason)
        # Document checks precede the table verdict; a table rejection rolls back coordinator writes
        await self._coordinate_documents(investment, action, payload)
        if not outcome.accepted:
            raise WorkflowError(outcome.rejection, outcome.reason)
        application_status = await self._write_status(investment, outcome.next_status)
        await self.session.commit()
        await self.store.refresh(investment)
        return investment, application_status

    async def _coordinate_documents(self, investment: Investment, action: Action, payload: ActionPayload) -> None:
        application_id = investment.application_id
        if action is Action.SIGN_SUBSCRIPTION:
            agreement = await self.signatures.latest_for(application_id, DocumentType.SUBSCRIPTION_AGREEMENT)
            if agreement is None or agreement.status == SignatureStatus.SUPERSEDED.value:
                agreement = await self.signatures.create_or_replace(
                    application_id, DocumentType.SUBSCRIPTION_AGREEMENT
                )
            await self.signatures.record_investor_signature(agreement.id)

        elif action is Action.SEND_PROMISSORY_NOTE:
            # Approval is the admin's countersignature on the subscription agreement
            agreement = await self.signatures.latest_for(application_id, DocumentType.SUBSCRIPTION_AGREEMENT)
            if agreement is None:
                raise WorkflowError(FailureKind.NOT_YET_INVESTOR_SIGNED)
            await self.signatures.record_admin_signature(agreement.id)
            await self.signatures.create_or_replace(
                application_id, DocumentType.PROMISSORY_NOTE, notes=payload.notes
            )

        elif action is Action.SIGN_PROMISSORY_INVESTOR:
            note = await self.signatures.latest_for(application_id, DocumentType.PROMISSORY_NOTE)
            if note is None:
                raise WorkflowError(FailureKind.INVALID_TRANSITION, "No promissory note has been sent yet.")
            await self.signatures.record_investor_signature(note.id)

        elif action is Action.SIGN_PROMISSORY_ADMIN:
            note = await self.signatures.latest_for(application_id, DocumentType.PROMISSORY_NOTE)
            if note is None:
                raise WorkflowError(FailureKind.NOT_YET_INVESTOR_SIGNED)
            await self.signatures.record_admin_signature(note.id)

        elif action is Action.DECLINE:
            await self.signatures.supersede_live(application_id)

    async def _write_status(self, investment: Investment, next_status: InvestmentStatus) -> Optional[str]:
        """Investment and application move together or not at all; the caller commits."""
        patch = {"status": next_status.value}
        if next_status is InvestmentStatus.ACTIVE:
            patch["activated_at"] = datetime.now(timezone.utc)
        await self.store.conditional_update(Investment, investment.id, investment.version, patch)

        application = await self.store.get(InvestmentApplication, investment.application_id)
        if application is None:
            return None
        mirrored = application_status_for(next_status)
        if application.status == mirrored:
            return application.status
        if application.status in APPLICATION_TERMINAL_STATUSES:
            logger.warning(
                "dispatch.application_terminal",
                investment_id=investment.id,
                application_id=application.id,
                application_status=application.status,
            )
            return application.status
        await self.store.conditional_update(
            InvestmentApplication, application.id, application.version, {"status": mirrored}
        )
        return mirrored
