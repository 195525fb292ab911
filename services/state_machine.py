"""
Investment lifecycle state machine.

Pure: no store, no session, no notifications. `transition` answers whether an
actor may apply an action from a status and what the next status is; callers
perform every side effect only after it returns an accepted result.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from services.errors import DEFAULT_MESSAGES, FailureKind


class InvestmentStatus(str, Enum):
    PENDING = "pending"
    PENDING_APPROVAL = "pending_approval"
    PROMISSORY_NOTE_PENDING = "promissory_note_pending"
    BANK_DETAILS_PENDING = "bank_details_pending"
    FUNDS_PENDING = "funds_pending"
    PLAID_PENDING = "plaid_pending"
    INVESTOR_ONBOARDING_COMPLETE = "investor_onboarding_complete"
    ACTIVE = "active"
    CANCELLED = "cancelled"


class ActorRole(str, Enum):
    INVESTOR = "investor"
    ADMIN = "admin"


class Action(str, Enum):
    SIGN_SUBSCRIPTION = "sign_subscription"
    SEND_PROMISSORY_NOTE = "send_promissory_note"
    SIGN_PROMISSORY_INVESTOR = "sign_promissory_investor"
    SIGN_PROMISSORY_ADMIN = "sign_promissory_admin"
    CONFIRM_WIRE_DETAILS = "confirm_wire_details"
    VERIFY_FUNDS = "verify_funds"
    LINK_BANK_ACCOUNT = "link_bank_account"
    ACTIVATE = "activate"
    DECLINE = "decline"


TERMINAL_STATUSES = frozenset({InvestmentStatus.ACTIVE, InvestmentStatus.CANCELLED})

# Onboarding order, initial to terminal success
STATUS_ORDER: list[InvestmentStatus] = [
    InvestmentStatus.PENDING,
    InvestmentStatus.PENDING_APPROVAL,
    InvestmentStatus.PROMISSORY_NOTE_PENDING,
    InvestmentStatus.BANK_DETAILS_PENDING,
    InvestmentStatus.FUNDS_PENDING,
    InvestmentStatus.PLAID_PENDING,
    InvestmentStatus.INVESTOR_ONBOARDING_COMPLETE,
    InvestmentStatus.ACTIVE,
]

# Each action has exactly one authorized actor, whatever the current status
ACTION_ACTORS: dict[Action, ActorRole] = {
    Action.SIGN_SUBSCRIPTION: ActorRole.INVESTOR,
    Action.SEND_PROMISSORY_NOTE: ActorRole.ADMIN,
    Action.SIGN_PROMISSORY_INVESTOR: ActorRole.INVESTOR,
    Action.SIGN_PROMISSORY_ADMIN: ActorRole.ADMIN,
    Action.CONFIRM_WIRE_DETAILS: ActorRole.INVESTOR,
    Action.VERIFY_FUNDS: ActorRole.ADMIN,
    Action.LINK_BANK_ACCOUNT: ActorRole.INVESTOR,
    Action.ACTIVATE: ActorRole.ADMIN,
    Action.DECLINE: ActorRole.ADMIN,
}

TRANSITIONS: dict[tuple[InvestmentStatus, Action], InvestmentStatus] = {
    (InvestmentStatus.PENDING, Action.SIGN_SUBSCRIPTION): InvestmentStatus.PENDING_APPROVAL,
    (InvestmentStatus.PENDING_APPROVAL, Action.SEND_PROMISSORY_NOTE): InvestmentStatus.PROMISSORY_NOTE_PENDING,
    # Only the note's signature advances; the investment waits for the countersignature
    (InvestmentStatus.PROMISSORY_NOTE_PENDING, Action.SIGN_PROMISSORY_INVESTOR): InvestmentStatus.PROMISSORY_NOTE_PENDING,
    (InvestmentStatus.PROMISSORY_NOTE_PENDING, Action.SIGN_PROMISSORY_ADMIN): InvestmentStatus.BANK_DETAILS_PENDING,
    (InvestmentStatus.BANK_DETAILS_PENDING, Action.CONFIRM_WIRE_DETAILS): InvestmentStatus.FUNDS_PENDING,
    (InvestmentStatus.FUNDS_PENDING, Action.VERIFY_FUNDS): InvestmentStatus.PLAID_PENDING,
    (InvestmentStatus.PLAID_PENDING, Action.LINK_BANK_ACCOUNT): InvestmentStatus.INVESTOR_ONBOARDING_COMPLETE,
    (InvestmentStatus.INVESTOR_ONBOARDING_COMPLETE, Action.ACTIVATE): InvestmentStatus.ACTIVE,
}
for _status in InvestmentStatus:
    if _status not in TERMINAL_STATUSES:
        TRANSITIONS[(_status, Action.DECLINE)] = InvestmentStatus.CANCELLED

REQUIRED_NEXT_ACTION: dict[InvestmentStatus, str] = {
    InvestmentStatus.PENDING: "Investor must sign the subscription agreement",
    InvestmentStatus.PENDING_APPROVAL: "Admin must approve and send the promissory note",
    InvestmentStatus.BANK_DETAILS_PENDING: "Investor must confirm wire details",
    InvestmentStatus.FUNDS_PENDING: "Admin must verify receipt of funds",
    InvestmentStatus.PLAID_PENDING: "Investor must link a bank account",
    InvestmentStatus.INVESTOR_ONBOARDING_COMPLETE: "Admin must activate the investment",
    InvestmentStatus.ACTIVE: "No action required; investment is active",
    InvestmentStatus.CANCELLED: "No action required; investment was declined",
}

# Keyed on whether the investor has signed the current promissory note
NOTE_STEP_ACTION: dict[bool, str] = {
    False: "Investor must sign the promissory note",
    True: "Admin must countersign the promissory note",
}

STAGE_LABELS: dict[InvestmentStatus, str] = {
    InvestmentStatus.PENDING: "1/4",
    InvestmentStatus.PENDING_APPROVAL: "2/4",
    InvestmentStatus.PROMISSORY_NOTE_PENDING: "2/4",
    InvestmentStatus.BANK_DETAILS_PENDING: "2/4",
    InvestmentStatus.FUNDS_PENDING: "3/4",
    InvestmentStatus.PLAID_PENDING: "4/4",
    InvestmentStatus.INVESTOR_ONBOARDING_COMPLETE: "4/4",
    InvestmentStatus.ACTIVE: "Active",
    InvestmentStatus.CANCELLED: "Cancelled",
}


class TransitionResult(BaseModel):
    """Either `next_status` (accepted) or `rejection` with a reason, never both."""

    next_status: Optional[InvestmentStatus] = None
    rejection: Optional[FailureKind] = None
    reason: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.rejection is None


def _rejected(kind: FailureKind, reason: str | None = None) -> TransitionResult:
    return TransitionResult(rejection=kind, reason=reason or DEFAULT_MESSAGES[kind])


def transition(current: InvestmentStatus, action: Action, actor: ActorRole) -> TransitionResult:
    """
    Evaluate `action` by `actor` from `current`.
    Checked in order: terminal status, authorized actor, transition table.
    """
    current = InvestmentStatus(current)
    action = Action(action)
    actor = ActorRole(actor)

    if current in TERMINAL_STATUSES:
        return _rejected(FailureKind.ALREADY_TERMINAL, f"Investment is already {current.value}")
    expected_actor = ACTION_ACTORS[action]
    if actor is not expected_actor:
        return _rejected(
            FailureKind.WRONG_ACTOR,
            f"Only the {expected_actor.value} can perform '{action.value}'",
        )
    next_status = TRANSITIONS.get((current, action))
    if next_status is None:
        return _rejected(
            FailureKind.INVALID_TRANSITION,
            f"'{action.value}' is not available while the investment is {current.value}",
        )
    return TransitionResult(next_status=next_status)


def is_terminal(status: InvestmentStatus) -> bool:
    return InvestmentStatus(status) in TERMINAL_STATUSES


def required_next_action(status: InvestmentStatus, note_investor_signed: bool = False) -> str:
    status = InvestmentStatus(status)
    if status is InvestmentStatus.PROMISSORY_NOTE_PENDING:
        return NOTE_STEP_ACTION[note_investor_signed]
    return REQUIRED_NEXT_ACTION[status]


def awaiting_actor(status: InvestmentStatus, note_investor_signed: bool = False) -> Optional[ActorRole]:
    """
    Who the workflow is waiting on, or None once terminal.
    While the promissory note is out, the note's own progress decides: investor until
    they sign, then admin for the countersignature.
    """
    status = InvestmentStatus(status)
    if status in TERMINAL_STATUSES:
        return None
    if status is InvestmentStatus.PROMISSORY_NOTE_PENDING:
        return ActorRole.ADMIN if note_investor_signed else ActorRole.INVESTOR
    for (from_status, action), _next in TRANSITIONS.items():
        if from_status is status and action is not Action.DECLINE:
            return ACTION_ACTORS[action]
    return None


def available_actions(
    status: InvestmentStatus, actor: ActorRole, note_investor_signed: bool = False
) -> list[Action]:
    """Actions `actor` may usefully attempt from `status`, in table order."""
    status = InvestmentStatus(status)
    actor = ActorRole(actor)
    if status in TERMINAL_STATUSES:
        return []
    # Signing steps that the promissory note's progress has already passed or not yet reached
    blocked = set()
    if status is InvestmentStatus.PROMISSORY_NOTE_PENDING:
        blocked.add(Action.SIGN_PROMISSORY_INVESTOR if note_investor_signed else Action.SIGN_PROMISSORY_ADMIN)
    return [
        action
        for (from_status, action) in TRANSITIONS
        if from_status is status and ACTION_ACTORS[action] is actor and action not in blocked
    ]


def progress_percentage(status: InvestmentStatus) -> int:
    status = InvestmentStatus(status)
    if status not in STATUS_ORDER:
        return 0
    return round(STATUS_ORDER.index(status) / (len(STATUS_ORDER) - 1) * 100)


def stage_label(status: InvestmentStatus) -> str:
    return STAGE_LABELS[InvestmentStatus(status)]


# Application statuses that can never be left once reached
APPLICATION_TERMINAL_STATUSES = frozenset({"deleted", "rejected", "active"})


def application_status_for(status: InvestmentStatus) -> str:
    """Mirrored application status; a declined investment deletes its application."""
    status = InvestmentStatus(status)
    if status is InvestmentStatus.CANCELLED:
        return "deleted"
    return status.value
