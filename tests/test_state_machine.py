"""
Tests for the pure investment state machine: table, actor checks, terminal states.
Run from project root: python -m pytest tests/test_state_machine.py -v
"""
import unittest

from services.errors import FailureKind
from services.state_machine import (
    ACTION_ACTORS,
    Action,
    ActorRole,
    InvestmentStatus,
    TERMINAL_STATUSES,
    application_status_for,
    available_actions,
    awaiting_actor,
    progress_percentage,
    required_next_action,
    stage_label,
    transition,
)

S = InvestmentStatus
A = Action
INVESTOR = ActorRole.INVESTOR
ADMIN = ActorRole.ADMIN

EXPECTED_TABLE = {
    (S.PENDING, A.SIGN_SUBSCRIPTION): (S.PENDING_APPROVAL, INVESTOR),
    (S.PENDING_APPROVAL, A.SEND_PROMISSORY_NOTE): (S.PROMISSORY_NOTE_PENDING, ADMIN),
    (S.PROMISSORY_NOTE_PENDING, A.SIGN_PROMISSORY_INVESTOR): (S.PROMISSORY_NOTE_PENDING, INVESTOR),
    (S.PROMISSORY_NOTE_PENDING, A.SIGN_PROMISSORY_ADMIN): (S.BANK_DETAILS_PENDING, ADMIN),
    (S.BANK_DETAILS_PENDING, A.CONFIRM_WIRE_DETAILS): (S.FUNDS_PENDING, INVESTOR),
    (S.FUNDS_PENDING, A.VERIFY_FUNDS): (S.PLAID_PENDING, ADMIN),
    (S.PLAID_PENDING, A.LINK_BANK_ACCOUNT): (S.INVESTOR_ONBOARDING_COMPLETE, INVESTOR),
    (S.INVESTOR_ONBOARDING_COMPLETE, A.ACTIVATE): (S.ACTIVE, ADMIN),
}
NON_TERMINAL = [s for s in S if s not in TERMINAL_STATUSES]
for _s in NON_TERMINAL:
    EXPECTED_TABLE[(_s, A.DECLINE)] = (S.CANCELLED, ADMIN)


def _other(actor):
    return ADMIN if actor is INVESTOR else INVESTOR


class TestTransitionTable(unittest.TestCase):
    def test_every_table_row_yields_its_next_state(self):
        for (status, action), (expected, actor) in EXPECTED_TABLE.items():
            with self.subTest(status=status, action=action):
                result = transition(status, action, actor)
                self.assertTrue(result.accepted)
                self.assertEqual(result.next_status, expected)
                self.assertIsNone(result.rejection)

    def test_pairs_outside_the_table_are_invalid(self):
        for status in NON_TERMINAL:
            for action in A:
                if (status, action) in EXPECTED_TABLE:
                    continue
                with self.subTest(status=status, action=action):
                    result = transition(status, action, ACTION_ACTORS[action])
                    self.assertFalse(result.accepted)
                    self.assertEqual(result.rejection, FailureKind.INVALID_TRANSITION)
                    self.assertIsNone(result.next_status)

    def test_wrong_actor_wins_over_table_lookup(self):
        """Wrong actor is reported whether or not the pair is in the table."""
        for status in NON_TERMINAL:
            for action in A:
                with self.subTest(status=status, action=action):
                    result = transition(status, action, _other(ACTION_ACTORS[action]))
                    self.assertEqual(result.rejection, FailureKind.WRONG_ACTOR)

    def test_terminal_states_reject_everything(self):
        for status in TERMINAL_STATUSES:
            for action in A:
                for actor in ActorRole:
                    with self.subTest(status=status, action=action, actor=actor):
                        result = transition(status, action, actor)
                        self.assertEqual(result.rejection, FailureKind.ALREADY_TERMINAL)

    def test_accepts_raw_string_values(self):
        result = transition("funds_pending", "verify_funds", "admin")
        self.assertEqual(result.next_status, S.PLAID_PENDING)

    def test_unknown_action_fails_at_construction(self):
        with self.assertRaises(ValueError):
            Action("approve_everything")
        with self.assertRaises(ValueError):
            ActorRole("sub_admin")

    def test_rejection_carries_a_reason(self):
        result = transition(S.PENDING, A.VERIFY_FUNDS, ADMIN)
        self.assertIn("verify_funds", result.reason)


class TestDerivedLabels(unittest.TestCase):
    def test_every_status_has_a_required_next_action(self):
        for status in S:
            self.assertTrue(required_next_action(status))
        self.assertIn("wire", required_next_action(S.BANK_DETAILS_PENDING))

    def test_progress_runs_from_zero_to_hundred(self):
        self.assertEqual(progress_percentage(S.PENDING), 0)
        self.assertEqual(progress_percentage(S.ACTIVE), 100)
        self.assertEqual(progress_percentage(S.CANCELLED), 0)
        self.assertLess(progress_percentage(S.FUNDS_PENDING), progress_percentage(S.PLAID_PENDING))

    def test_stage_labels(self):
        self.assertEqual(stage_label(S.PENDING), "1/4")
        self.assertEqual(stage_label(S.FUNDS_PENDING), "3/4")
        self.assertEqual(stage_label(S.ACTIVE), "Active")

    def test_awaiting_actor(self):
        self.assertEqual(awaiting_actor(S.PENDING), INVESTOR)
        self.assertEqual(awaiting_actor(S.PENDING_APPROVAL), ADMIN)
        self.assertEqual(awaiting_actor(S.PROMISSORY_NOTE_PENDING), INVESTOR)
        self.assertEqual(awaiting_actor(S.INVESTOR_ONBOARDING_COMPLETE), ADMIN)
        self.assertIsNone(awaiting_actor(S.ACTIVE))
        self.assertIsNone(awaiting_actor(S.CANCELLED))

    def test_promissory_note_progress_decides_who_acts(self):
        self.assertEqual(awaiting_actor(S.PROMISSORY_NOTE_PENDING, note_investor_signed=True), ADMIN)
        self.assertEqual(
            required_next_action(S.PROMISSORY_NOTE_PENDING), "Investor must sign the promissory note"
        )
        self.assertEqual(
            required_next_action(S.PROMISSORY_NOTE_PENDING, note_investor_signed=True),
            "Admin must countersign the promissory note",
        )
        # Other statuses ignore the note
        self.assertEqual(awaiting_actor(S.FUNDS_PENDING, note_investor_signed=True), ADMIN)
        self.assertEqual(awaiting_actor(S.BANK_DETAILS_PENDING, note_investor_signed=True), INVESTOR)

    def test_available_actions(self):
        self.assertEqual(available_actions(S.PROMISSORY_NOTE_PENDING, ADMIN), [A.DECLINE])
        self.assertEqual(available_actions(S.PROMISSORY_NOTE_PENDING, INVESTOR), [A.SIGN_PROMISSORY_INVESTOR])
        self.assertEqual(
            available_actions(S.PROMISSORY_NOTE_PENDING, ADMIN, note_investor_signed=True),
            [A.SIGN_PROMISSORY_ADMIN, A.DECLINE],
        )
        self.assertEqual(available_actions(S.PROMISSORY_NOTE_PENDING, INVESTOR, note_investor_signed=True), [])
        self.assertEqual(available_actions(S.PENDING_APPROVAL, ADMIN), [A.SEND_PROMISSORY_NOTE, A.DECLINE])
        self.assertEqual(available_actions(S.CANCELLED, ADMIN), [])

    def test_application_mirror(self):
        self.assertEqual(application_status_for(S.CANCELLED), "deleted")
        self.assertEqual(application_status_for(S.ACTIVE), "active")
        self.assertEqual(application_status_for(S.FUNDS_PENDING), "funds_pending")


if __name__ == "__main__":
    unittest.main()
