import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from billing_engine.database import db
from billing_engine.exceptions import NotFoundError, ValidationError
from billing_engine.models.invoice import Invoice, PaymentMethod
from billing_engine.models.reminder import ReminderRule
from billing_engine.tools.numbering import DocumentNumberGenerator
from billing_engine.tools.reminders import reminder_scheduler
from billing_engine.workflow.hooks import prepare_invoice_update, prepare_new_invoice
from billing_engine.workflow.state_machine import Transition, invoice_state_machine

logger = logging.getLogger(__name__)

# Fields a caller may edit directly; everything else moves only through transitions
UPDATABLE_FIELDS = frozenset({
    "title", "description", "client_name", "client_email", "client_address",
    "due_date", "template", "items", "tax", "discount", "currency",
    "notes", "terms_and_conditions", "pdf_url", "pdf_generated",
    "is_recurring", "recurring_frequency", "next_invoice_date",
})

class InvoiceService:
    """
    Runs invoice transitions and persists their results. Each public method is
    one logical operation: load, transition, save.
    """

    def _generator(self) -> DocumentNumberGenerator:
        return DocumentNumberGenerator(db.sequence_store)

    async def create(self, invoice: Invoice, now: Optional[datetime] = None) -> Invoice:
        now = now or datetime.utcnow()
        invoice = await prepare_new_invoice(invoice, self._generator(), now)
        created = await db.invoices.create(invoice)
        logger.info(f"Created invoice {created.invoice_number} ({created.id})")
        return created

    async def get(self, invoice_id: str, now: Optional[datetime] = None) -> Invoice:
        """Load an invoice, applying the lazy overdue check."""
        now = now or datetime.utcnow()
        invoice = await self._load(invoice_id)
        return await self._persist(invoice_state_machine.check_overdue(invoice, now))

    async def get_by_number(self, invoice_number: str, now: Optional[datetime] = None) -> Invoice:
        now = now or datetime.utcnow()
        invoice = await db.invoices.get_by_invoice_number(invoice_number)
        if not invoice:
            raise NotFoundError(f"Invoice {invoice_number} not found")
        return await self._persist(invoice_state_machine.check_overdue(invoice, now))

    async def payment_history(self, days: int = 30, created_by: Optional[str] = None,
                              now: Optional[datetime] = None) -> List[Invoice]:
        """Paid invoices with a payment in the last `days` days."""
        return await db.invoices.find_payment_history(now or datetime.utcnow(), days, created_by)

    async def update(self, invoice_id: str, changes: Dict[str, Any], now: Optional[datetime] = None) -> Invoice:
        now = now or datetime.utcnow()
        rejected = set(changes) - UPDATABLE_FIELDS
        if rejected:
            raise ValidationError(
                f"Fields cannot be edited directly: {', '.join(sorted(rejected))}",
                extra={"fields": sorted(rejected)},
            )
        invoice = await self._load(invoice_id)
        try:
            updated = Invoice.model_validate({**invoice.model_dump(), **changes})
        except PydanticValidationError as e:
            errors = e.errors(include_url=False, include_context=False, include_input=False)
            raise ValidationError(f"Invalid invoice update: {e.error_count()} error(s)", extra={"errors": errors}) from e
        updated = prepare_invoice_update(updated, now)
        return await db.invoices.save(updated)

    async def send(self, invoice_id: str, recipients: Optional[List[str]] = None,
                   now: Optional[datetime] = None) -> Invoice:
        now = now or datetime.utcnow()
        invoice = await self._load(invoice_id)
        transition = invoice_state_machine.mark_sent(invoice, now, recipients)
        # Sending starts the reminder clock
        sent = transition.document
        if sent.reminder_settings.enabled:
            sent = reminder_scheduler.refresh(sent, now)
        return await self._persist(Transition(document=sent))

    async def pay(self, invoice_id: str, payment_method: Optional[PaymentMethod] = None,
                  payment_reference: Optional[str] = None, now: Optional[datetime] = None) -> Invoice:
        now = now or datetime.utcnow()
        invoice = await self._load(invoice_id)
        invoice = invoice_state_machine.check_overdue(invoice, now).document
        return await self._persist(invoice_state_machine.mark_paid(invoice, now, payment_method, payment_reference))

    async def view(self, invoice_id: str, now: Optional[datetime] = None) -> Invoice:
        now = now or datetime.utcnow()
        invoice = await self._load(invoice_id)
        return await self._persist(invoice_state_machine.mark_viewed(invoice, now))

    async def download(self, invoice_id: str) -> Invoice:
        invoice = await self._load(invoice_id)
        return await self._persist(invoice_state_machine.record_download(invoice))

    async def cancel(self, invoice_id: str, now: Optional[datetime] = None) -> Invoice:
        now = now or datetime.utcnow()
        invoice = await self._load(invoice_id)
        return await self._persist(invoice_state_machine.cancel(invoice, now))

    async def duplicate(self, invoice_id: str, now: Optional[datetime] = None) -> Invoice:
        """Clone into a new numbered draft. The source is left untouched."""
        now = now or datetime.utcnow()
        source = await self._load(invoice_id)
        return await self.create(invoice_state_machine.duplicate(source, now), now)

    async def set_reminder_schedule(self, invoice_id: str, schedule: List[ReminderRule],
                                    now: Optional[datetime] = None) -> Invoice:
        now = now or datetime.utcnow()
        invoice = await self._load(invoice_id)
        return await self._persist(Transition(document=reminder_scheduler.set_schedule(invoice, schedule, now)))

    async def disable_reminders(self, invoice_id: str) -> Invoice:
        invoice = await self._load(invoice_id)
        return await self._persist(Transition(document=reminder_scheduler.disable(invoice)))

    async def _load(self, invoice_id: str) -> Invoice:
        invoice = await db.invoices.get(invoice_id)
        if not invoice:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return invoice

    async def _persist(self, transition: Transition) -> Invoice:
        if not transition.requires_persist:
            return transition.document
        return await db.invoices.save(transition.document)

invoice_service = InvoiceService()
