import asyncio
import logging
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING, IndexModel

from billing_engine.config import settings

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

async def init_db():
    logger.info(f"Connecting to {settings.MONGODB_URL}...")
    client = AsyncIOMotorClient(settings.MONGODB_URL)
    db = client[settings.DB_NAME]

    # 1. Counters: the bucket id is the _id, which is already unique
    logger.info("Ensuring 'counters' collection exists...")
    if "counters" not in await db.list_collection_names():
        await db.create_collection("counters")

    # 2. Invoices
    logger.info("Creating indexes on 'invoices'...")
    await db.invoices.create_indexes([
        IndexModel([("invoice_number", ASCENDING)], unique=True, sparse=True),
        IndexModel([("client_id", ASCENDING), ("status", ASCENDING)]),
        IndexModel([("created_by", ASCENDING), ("status", ASCENDING), ("issue_date", DESCENDING)]),
        IndexModel([("due_date", ASCENDING), ("status", ASCENDING)]),
        IndexModel([
            ("reminder_settings.enabled", ASCENDING),
            ("status", ASCENDING),
            ("reminder_settings.last_reminder_date", ASCENDING),
        ]),
        IndexModel([("status", ASCENDING), ("payment_date", DESCENDING)]),
        IndexModel([("parent_invoice_id", ASCENDING)], sparse=True),
    ])

    # 3. Proposals
    logger.info("Creating indexes on 'proposals'...")
    await db.proposals.create_indexes([
        IndexModel([("proposal_number", ASCENDING)], unique=True, sparse=True),
        IndexModel([("lead_id", ASCENDING), ("created_at", DESCENDING)]),
        IndexModel([("created_by", ASCENDING), ("status", ASCENDING)]),
    ])

    logger.info("Database initialization complete.")
    client.close()

if __name__ == "__main__":
    asyncio.run(init_db())
