from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.deps import get_notification_sink, get_session_factory
from database import get_db
from models import Investment, InvestmentApplication
from schemas.document_signature import DocumentSignatureView
from schemas.investment import (
    ActionRequest,
    DispatchResult,
    Failure,
    InvestmentCreate,
    InvestmentDetailsUpdate,
    InvestmentView,
)
from services.dispatcher import ActionDispatcher, investment_view
from services.errors import FailureKind, WorkflowError
from services.notifications import NotificationSink
from services.onboarding import create_investment_application, update_investment_details
from services.signatures import DocumentSignatureCoordinator
from services.state_machine import InvestmentStatus
from services.store import RecordStore

router = APIRouter(prefix="/api/investments", tags=["investments"])

MSG_INVESTMENT_NOT_FOUND = "Investment not found"

FAILURE_STATUS_CODES = {
    FailureKind.NOT_FOUND: 404,
    FailureKind.WRONG_ACTOR: 403,
    FailureKind.CONFLICT: 409,
    FailureKind.ALREADY_TERMINAL: 422,
    FailureKind.INVALID_TRANSITION: 422,
    FailureKind.ALREADY_SIGNED: 422,
    FailureKind.NOT_YET_INVESTOR_SIGNED: 422,
}


def _failure_response(failure: Failure) -> JSONResponse:
    return JSONResponse(
        status_code=FAILURE_STATUS_CODES[failure.kind],
        content=failure.model_dump(by_alias=True, mode="json"),
    )


async def _application_status(db: AsyncSession, application_id: str) -> Optional[str]:
    result = await db.execute(
        select(InvestmentApplication.status).where(InvestmentApplication.id == application_id)
    )
    return result.scalar_one_or_none()


@router.post("", response_model=InvestmentView, status_code=201)
async def create_investment(
    body: InvestmentCreate,
    db: AsyncSession = Depends(get_db),
    sink: NotificationSink = Depends(get_notification_sink),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    investment = await create_investment_application(db, body, sink=sink, session_factory=session_factory)
    return await investment_view(RecordStore(db), investment, InvestmentStatus.PENDING.value)


@router.get("", response_model=list[InvestmentView])
async def list_investments(
    user_id: Optional[str] = Query(None, alias="userId"),
    status: Optional[InvestmentStatus] = None,
    db: AsyncSession = Depends(get_db),
):
    stmt = select(Investment, InvestmentApplication.status).outerjoin(
        InvestmentApplication, InvestmentApplication.id == Investment.application_id
    )
    if user_id:
        stmt = stmt.where(Investment.user_id == user_id)
    if status:
        stmt = stmt.where(Investment.status == status.value)
    result = await db.execute(stmt.order_by(Investment.updated_at.desc()))
    store = RecordStore(db)
    return [await investment_view(store, inv, app_status) for inv, app_status in result.all()]


@router.get("/{investment_id}", response_model=InvestmentView)
async def get_investment(investment_id: str, db: AsyncSession = Depends(get_db)):
    store = RecordStore(db)
    investment = await store.get(Investment, investment_id)
    if not investment:
        raise HTTPException(status_code=404, detail=MSG_INVESTMENT_NOT_FOUND)
    return await investment_view(store, investment, await _application_status(db, investment.application_id))


@router.patch("/{investment_id}", response_model=InvestmentView)
async def edit_investment_details(
    investment_id: str, body: InvestmentDetailsUpdate, db: AsyncSession = Depends(get_db)
):
    try:
        investment = await update_investment_details(db, investment_id, body)
    except WorkflowError as e:
        return _failure_response(Failure(kind=e.kind, message=e.message))
    return await investment_view(
        RecordStore(db), investment, await _application_status(db, investment.application_id)
    )


@router.post("/{investment_id}/actions", response_model=DispatchResult)
async def dispatch_action(
    investment_id: str,
    body: ActionRequest,
    db: AsyncSession = Depends(get_db),
    sink: NotificationSink = Depends(get_notification_sink),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    dispatcher = ActionDispatcher(db, sink=sink, session_factory=session_factory)
    outcome = await dispatcher.dispatch(investment_id, body.actor_role, body.action, body.payload)
    if isinstance(outcome, Failure):
        return _failure_response(outcome)
    return outcome


@router.get("/{investment_id}/signatures", response_model=list[DocumentSignatureView])
async def list_signatures(investment_id: str, db: AsyncSession = Depends(get_db)):
    store = RecordStore(db)
    investment = await store.get(Investment, investment_id)
    if not investment:
        raise HTTPException(status_code=404, detail=MSG_INVESTMENT_NOT_FOUND)
    history = await DocumentSignatureCoordinator(store).history_for(investment.application_id)
    return [DocumentSignatureView.model_validate(s) for s in history]
