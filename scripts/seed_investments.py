"""
Seed demo investments at different onboarding stages.
Run: python -m scripts.seed_investments (from the project root, with DB running).
"""
import asyncio
import os
import sys

# Add parent so we can import from the project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from database import AsyncSessionLocal, init_db
from logging_config import configure_logging
from models import Investment
from schemas.investment import Failure, InvestmentCreate
from services.dispatcher import ActionDispatcher
from services.onboarding import create_investment_application
from services.state_machine import Action, ActorRole

INVESTOR = ActorRole.INVESTOR
ADMIN = ActorRole.ADMIN

# (user, amount, actions replayed after creation)
INVESTMENTS_DATA = [
    ("demo-investor-1", 250_000, []),
    ("demo-investor-2", 500_000, [(INVESTOR, Action.SIGN_SUBSCRIPTION)]),
    (
        "demo-investor-3",
        100_000,
        [
            (INVESTOR, Action.SIGN_SUBSCRIPTION),
            (ADMIN, Action.SEND_PROMISSORY_NOTE),
            (INVESTOR, Action.SIGN_PROMISSORY_INVESTOR),
        ],
    ),
    (
        "demo-investor-4",
        750_000,
        [
            (INVESTOR, Action.SIGN_SUBSCRIPTION),
            (ADMIN, Action.SEND_PROMISSORY_NOTE),
            (INVESTOR, Action.SIGN_PROMISSORY_INVESTOR),
            (ADMIN, Action.SIGN_PROMISSORY_ADMIN),
            (INVESTOR, Action.CONFIRM_WIRE_DETAILS),
            (ADMIN, Action.VERIFY_FUNDS),
            (INVESTOR, Action.LINK_BANK_ACCOUNT),
            (ADMIN, Action.ACTIVATE),
        ],
    ),
]


async def seed():
    configure_logging()
    await init_db()
    async with AsyncSessionLocal() as session:
        for user_id, amount, actions in INVESTMENTS_DATA:
            existing = await session.execute(select(Investment).where(Investment.user_id == user_id))
            if existing.scalars().first():
                print(f"Investor {user_id} already has an investment, skipping")
                continue
            investment = await create_investment_application(
                session, InvestmentCreate(user_id=user_id, amount=amount)
            )
            dispatcher = ActionDispatcher(session)
            status = investment.status
            for actor, action in actions:
                outcome = await dispatcher.dispatch(investment.id, actor, action)
                if isinstance(outcome, Failure):
                    print(f"  {action.value} rejected: {outcome.kind.value} {outcome.message}")
                    break
                status = outcome.investment.status.value
            print(f"Seeded investment {investment.id} for {user_id}: {status}")
    print("Seed complete.")


if __name__ == "__main__":
    asyncio.run(seed())
