"""
Typed workflow failures.

Every rejected action maps to exactly one FailureKind so callers can branch on
`kind` and render an actionable message. Inside the services these travel as
WorkflowError; the dispatcher converts them into Failure values at its boundary.
"""
from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    WRONG_ACTOR = "WrongActor"
    INVALID_TRANSITION = "InvalidTransition"
    ALREADY_TERMINAL = "AlreadyTerminal"
    ALREADY_SIGNED = "AlreadySigned"
    NOT_YET_INVESTOR_SIGNED = "NotYetInvestorSigned"
    NOT_FOUND = "NotFound"
    CONFLICT = "Conflict"


DEFAULT_MESSAGES: dict[FailureKind, str] = {
    FailureKind.WRONG_ACTOR: "You are not allowed to perform this step.",
    FailureKind.INVALID_TRANSITION: "This action is not available at the current stage.",
    FailureKind.ALREADY_TERMINAL: "This investment is closed and can no longer change.",
    FailureKind.ALREADY_SIGNED: "This document was already signed.",
    FailureKind.NOT_YET_INVESTOR_SIGNED: "The investor has not signed this document yet.",
    FailureKind.NOT_FOUND: "Investment not found.",
    FailureKind.CONFLICT: "This investment was updated by someone else. Reload and try again.",
}

POLICY_KINDS = frozenset(
    {
        FailureKind.WRONG_ACTOR,
        FailureKind.INVALID_TRANSITION,
        FailureKind.ALREADY_TERMINAL,
        FailureKind.ALREADY_SIGNED,
        FailureKind.NOT_YET_INVESTOR_SIGNED,
    }
)


class WorkflowError(Exception):
    """A policy, conflict or lookup failure detected before anything was committed."""

    def __init__(self, kind: FailureKind, message: str | None = None):
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        super().__init__(f"{kind.value}: {self.message}")

    @property
    def is_policy(self) -> bool:
        return self.kind in POLICY_KINDS


class ConflictError(WorkflowError):
    """A conditional write lost to a concurrent writer."""

    def __init__(self, message: str | None = None):
        super().__init__(FailureKind.CONFLICT, message)
