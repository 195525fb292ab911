import unittest

from models import Investment, InvestmentApplication
from schemas.investment import InvestmentCreate, InvestmentDetailsUpdate
from services.errors import FailureKind, WorkflowError
from services.onboarding import create_investment_application, update_investment_details
from tests import support


class TestCreateInvestmentApplication(support.DatabaseTestCase):
    async def test_defaults_and_admin_notification(self):
        sink = support.RecordingSink()
        investment = await create_investment_application(
            self.session,
            InvestmentCreate(user_id="investor-9", amount=200_000),
            sink=sink,
            session_factory=self.session_factory,
        )
        self.assertEqual(investment.status, "pending")
        self.assertEqual(investment.annual_percentage, 12.0)
        self.assertEqual(investment.payment_frequency, "monthly")
        self.assertEqual(investment.term_months, 24)
        self.assertEqual(investment.version, 1)

        application = await self.fetch(InvestmentApplication, investment.application_id)
        self.assertEqual(application.status, "pending")
        self.assertEqual(application.investment_amount, 200_000)
        self.assertEqual(application.user_id, "investor-9")

        self.assertEqual(len(sink.sent), 1)
        self.assertEqual(sink.sent[0]["recipient_id"], "admin")
        self.assertIn("$200,000", sink.sent[0]["body"])

    async def test_accepts_camel_case_terms(self):
        body = InvestmentCreate.model_validate(
            {"userId": "investor-2", "amount": 50_000, "annualPercentage": 10.5, "paymentFrequency": "quarterly", "termMonths": 12}
        )
        investment = await create_investment_application(
            self.session, body, sink=support.RecordingSink(), session_factory=self.session_factory
        )
        self.assertEqual(
            (investment.annual_percentage, investment.payment_frequency, investment.term_months),
            (10.5, "quarterly", 12),
        )


class TestUpdateInvestmentDetails(support.DatabaseTestCase):
    async def test_admin_edit_is_mirrored_and_versioned(self):
        investment_id, application_id = await self.seed_investment(status="funds_pending")
        updated = await update_investment_details(
            self.session,
            investment_id,
            InvestmentDetailsUpdate(actor_role="admin", amount=600_000, term_months=36),
        )
        self.assertEqual(updated.amount, 600_000)
        self.assertEqual(updated.term_months, 36)
        self.assertEqual(updated.status, "funds_pending")
        self.assertEqual(updated.version, 2)

        application = await self.fetch(InvestmentApplication, application_id)
        self.assertEqual(application.investment_amount, 600_000)
        self.assertEqual(application.term_months, 36)
        self.assertEqual(application.status, "funds_pending")

    async def test_investor_cannot_edit(self):
        investment_id, _ = await self.seed_investment()
        with self.assertRaises(WorkflowError) as ctx:
            await update_investment_details(
                self.session, investment_id, InvestmentDetailsUpdate(actor_role="investor", amount=1)
            )
        self.assertEqual(ctx.exception.kind, FailureKind.WRONG_ACTOR)
        investment = await self.fetch(Investment, investment_id)
        self.assertEqual(investment.amount, 500_000)

    async def test_terminal_investment_is_frozen(self):
        investment_id, _ = await self.seed_investment(status="active")
        with self.assertRaises(WorkflowError) as ctx:
            await update_investment_details(
                self.session, investment_id, InvestmentDetailsUpdate(actor_role="admin", amount=1_000)
            )
        self.assertEqual(ctx.exception.kind, FailureKind.ALREADY_TERMINAL)

    async def test_missing_investment(self):
        with self.assertRaises(WorkflowError) as ctx:
            await update_investment_details(
                self.session, "inv-missing", InvestmentDetailsUpdate(actor_role="admin", amount=1_000)
            )
        self.assertEqual(ctx.exception.kind, FailureKind.NOT_FOUND)


if __name__ == "__main__":
    unittest.main()
