import argparse
import asyncio
import logging
from datetime import datetime, timezone

from billing_engine.config import settings
from billing_engine.database import db
from billing_engine.services.reminder_monitor import reminder_monitor

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

def _utc(value: str) -> datetime:
    at = datetime.fromisoformat(value)
    if at.tzinfo is not None:
        at = at.astimezone(timezone.utc).replace(tzinfo=None)
    return at

async def run_reminders(now: datetime):
    """
    One pass of the payment reminder job. Meant to be scheduled (cron) a few
    times a day; an invoice is reminded at most once per calendar day.
    """
    db.connect()
    try:
        summary = await reminder_monitor.run(now)
    finally:
        db.close()
    logger.info(f"Reminders sent: {summary['sent']}, failed: {summary['failed']}, skipped: {summary['skipped']}")
    return summary

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Send due payment reminders")
    parser.add_argument("--at", type=_utc, default=None,
                        help="Evaluate as of this UTC time (ISO 8601), defaults to now")
    args = parser.parse_args()

    asyncio.run(run_reminders(args.at or datetime.utcnow()))
