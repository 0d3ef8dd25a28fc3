from datetime import datetime, timedelta
from typing import List, Optional
from billing_engine.repositories.base import BaseRepository
from billing_engine.models.invoice import Invoice, InvoiceStatus

class InvoiceRepository(BaseRepository[Invoice]):

    async def get_by_invoice_number(self, invoice_number: str) -> Optional[Invoice]:
        return await self.get_by_field("invoice_number", invoice_number)

    async def find_overdue_candidates(self, now: datetime) -> List[Invoice]:
        """Sent invoices whose due date has passed but are not yet marked overdue."""
        return await self.find(
            {
                "is_active": True,
                "status": InvoiceStatus.SENT.value,
                "due_date": {"$lt": now},
            },
            sort=[("due_date", 1)],
        )

    async def find_needing_reminders(self, now: datetime) -> List[Invoice]:
        """
        Coarse store-side filter for the reminder job: reminders enabled and not
        yet reminded today. The next reminder date depends on `now`, so the exact
        "is due" decision is made per document by the reminder scheduler.
        """
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return await self.find(
            {
                "is_active": True,
                "status": {"$in": [InvoiceStatus.SENT.value, InvoiceStatus.OVERDUE.value]},
                "reminder_settings.enabled": True,
                "due_date": {"$ne": None},
                "$or": [
                    {"reminder_settings.last_reminder_date": None},
                    {"reminder_settings.last_reminder_date": {"$lt": start_of_day}},
                ],
            },
            sort=[("due_date", 1)],
        )

    async def find_payment_history(self, now: datetime, days: int = 30,
                                   created_by: Optional[str] = None) -> List[Invoice]:
        """Invoices paid within the last `days` days, most recent payment first."""
        query = {
            "is_active": True,
            "status": InvoiceStatus.PAID.value,
            "payment_date": {"$gte": now - timedelta(days=days)},
        }
        if created_by:
            query["created_by"] = created_by
        return await self.find(query, sort=[("payment_date", -1)])
