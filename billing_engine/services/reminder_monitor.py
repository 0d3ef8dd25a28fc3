import logging
from datetime import datetime
from typing import Any, Dict, Optional

from billing_engine.database import db
from billing_engine.models.invoice import Invoice
from billing_engine.models.reminder import ReminderStatus, ReminderType
from billing_engine.tools.notification_tool import notification_tool
from billing_engine.tools.reminders import reminder_scheduler
from billing_engine.workflow.state_machine import invoice_state_machine

logger = logging.getLogger(__name__)

class ReminderMonitor:
    """
    Periodic job. Marks past-due invoices overdue, then finds invoices whose
    payment reminder is due, hands delivery to the notifier and records the
    outcome on each invoice.
    """

    async def run(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.utcnow()
        marked = await self.sweep_overdue(now)
        candidates = await db.invoices.find_needing_reminders(now)
        logger.info(f"Reminder run at {now:%Y-%m-%d %H:%M}: {len(candidates)} candidate invoice(s)")

        summary = {"checked": len(candidates), "sent": 0, "failed": 0, "skipped": 0, "marked_overdue": marked}
        for invoice in candidates:
            transition = invoice_state_machine.check_overdue(invoice, now)
            refreshed = reminder_scheduler.refresh(transition.document, now)
            if not reminder_scheduler.is_due(refreshed, now):
                summary["skipped"] += 1
                stored_next = invoice.reminder_settings.next_reminder_date
                if transition.changed or refreshed.reminder_settings.next_reminder_date != stored_next:
                    await db.invoices.save(refreshed)
                continue
            status = await self.remind(refreshed, now)
            summary["sent" if status == ReminderStatus.SENT else "failed"] += 1

        logger.info(f"Reminder run complete: {summary}")
        return summary

    async def sweep_overdue(self, now: datetime) -> int:
        """Persist the sent -> overdue transition for every invoice past its due date."""
        marked = 0
        for invoice in await db.invoices.find_overdue_candidates(now):
            transition = invoice_state_machine.check_overdue(invoice, now)
            if transition.changed:
                await db.invoices.save(transition.document)
                marked += 1
        if marked:
            logger.info(f"Marked {marked} invoice(s) overdue")
        return marked

    async def remind(self, invoice: Invoice, now: datetime) -> ReminderStatus:
        settings = invoice.reminder_settings
        rule = reminder_scheduler.matching_rule(settings.schedule, invoice.due_date, now, settings.last_reminder_date)
        channel = rule.reminder_type if rule else ReminderType.EMAIL
        recipients = invoice.sent_to or [invoice.client_email]
        message = reminder_scheduler.default_message(invoice, now)
        subject = f"Payment reminder: {invoice.invoice_number}"

        try:
            await notification_tool.send_notification(recipients, subject, message, channel=channel)
            status = ReminderStatus.SENT
        except Exception as e:
            logger.error(f"Reminder delivery failed for invoice {invoice.invoice_number}: {e}")
            status = ReminderStatus.FAILED

        updated = reminder_scheduler.record_dispatch(
            invoice, now, recipients, message=message, reminder_type=channel, status=status
        )
        await db.invoices.save(updated)
        return status

reminder_monitor = ReminderMonitor()
