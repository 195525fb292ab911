"""
Redeliver notifications parked after a failed delivery.
Run: python -m scripts.retry_notifications (from the project root), e.g. from cron.
"""
import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import AsyncSessionLocal, init_db
from logging_config import configure_logging
from services.notifications import DatabaseNotificationSink, retry_pending_notifications


async def main():
    configure_logging()
    await init_db()
    delivered, failed = await retry_pending_notifications(DatabaseNotificationSink(AsyncSessionLocal))
    print(f"Delivered {delivered}, still failing {failed}.")


if __name__ == "__main__":
    asyncio.run(main())
