"""
Shared fixtures for the async tests: a throwaway SQLite file per test and
in-memory notification sinks.
"""
import os
import tempfile
import unittest
import uuid

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import models  # noqa: F401  (registers tables on Base.metadata)
from database import Base
from models import Investment, InvestmentApplication
from services.notifications import NotificationSink


class RecordingSink(NotificationSink):
    def __init__(self):
        self.sent = []

    async def send(self, recipient_id, subject, body, related_id=None):
        self.sent.append(
            {"recipient_id": recipient_id, "subject": subject, "body": body, "related_id": related_id}
        )


class FailingSink(NotificationSink):
    def __init__(self):
        self.attempts = 0

    async def send(self, recipient_id, subject, body, related_id=None):
        self.attempts += 1
        raise ConnectionError("notification service unavailable")


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    """Each test gets its own SQLite file so separate sessions really are separate connections."""

    async def asyncSetUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        path = os.path.join(self._tmpdir.name, "test.db")
        self.engine = create_async_engine(f"sqlite+aiosqlite:///{path}", connect_args={"timeout": 15})
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        self.session = self.session_factory()

    async def asyncTearDown(self):
        await self.session.close()
        await self.engine.dispose()
        self._tmpdir.cleanup()

    async def seed_investment(self, status="pending", amount=500_000, user_id="investor-1", application_status=None):
        """Insert an application/investment pair directly at `status`."""
        application_id = f"app-{uuid.uuid4().hex[:12]}"
        investment_id = f"inv-{uuid.uuid4().hex[:12]}"
        async with self.session_factory() as session:
            session.add(
                InvestmentApplication(
                    id=application_id,
                    user_id=user_id,
                    status=application_status or ("deleted" if status == "cancelled" else status),
                    investment_amount=amount,
                    annual_percentage=12.0,
                    payment_frequency="monthly",
                    term_months=24,
                    version=1,
                )
            )
            session.add(
                Investment(
                    id=investment_id,
                    application_id=application_id,
                    user_id=user_id,
                    amount=amount,
                    annual_percentage=12.0,
                    payment_frequency="monthly",
                    term_months=24,
                    status=status,
                    version=1,
                )
            )
            await session.commit()
        return investment_id, application_id

    async def fetch(self, model, record_id):
        async with self.session_factory() as session:
            return await session.get(model, record_id)
