import logging
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient
from billing_engine.config import settings
from billing_engine.repositories.counter import CounterRepository, InMemoryCounterStore, SequenceStore
from billing_engine.repositories.invoice import InvoiceRepository
from billing_engine.repositories.proposal import ProposalRepository
from billing_engine.models.counter import Counter
from billing_engine.models.invoice import Invoice
from billing_engine.models.proposal import Proposal

logger = logging.getLogger(__name__)

class Database:
    client: AsyncIOMotorClient = None

    # Repositories
    counters: CounterRepository = None
    invoices: InvoiceRepository = None
    proposals: ProposalRepository = None

    _memory_counters: Optional[InMemoryCounterStore] = None

    def connect(self):
        """Initialize database connection and repositories."""
        self.client = AsyncIOMotorClient(settings.MONGODB_URL)
        db = self.client[settings.DB_NAME]

        self.counters = CounterRepository(db.counters, Counter)
        self.invoices = InvoiceRepository(db.invoices, Invoice)
        self.proposals = ProposalRepository(db.proposals, Proposal)

        logger.info(f"Connected to MongoDB database '{settings.DB_NAME}'")

    def close(self):
        """Close database connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    @property
    def sequence_store(self) -> SequenceStore:
        """Counter backend selected by COUNTER_BACKEND."""
        if settings.COUNTER_BACKEND == "memory":
            if self._memory_counters is None:
                self._memory_counters = InMemoryCounterStore()
            return self._memory_counters
        return self.counters

db = Database()