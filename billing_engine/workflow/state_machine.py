"""
Lifecycle transitions for invoices and proposals.

Every transition is a pure function: it takes a document and the current time,
and returns a Transition holding an updated copy plus whether anything changed
and needs persisting. The source document is never mutated. Persistence is the
caller's job (see billing_engine.services).
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Generic, List, Optional, TypeVar

from billing_engine.config import settings
from billing_engine.exceptions import InvalidTransition
from billing_engine.models.document import SendRecord
from billing_engine.models.invoice import Invoice, InvoiceStatus, next_occurrence
from billing_engine.models.proposal import Proposal, ProposalStatus
from billing_engine.models.reminder import ReminderSettings

logger = logging.getLogger(__name__)

D = TypeVar("D", Invoice, Proposal)

@dataclass
class Transition(Generic[D]):
    document: D
    changed: bool = True

    @property
    def requires_persist(self) -> bool:
        return self.changed


def _stamp_sent(document: D, recipients: Optional[List[str]], now: datetime) -> None:
    document.sent_date = now
    if recipients:
        document.sent_to = list(recipients)
    document.send_history.append(SendRecord(sent_date=now, sent_to=list(recipients or document.sent_to)))


class InvoiceStateMachine:
    """
    draft -> sent -> overdue -> paid, with cancel from any non-terminal state.
    paid and cancelled are terminal.
    """

    SENDABLE = (InvoiceStatus.DRAFT, InvoiceStatus.SENT, InvoiceStatus.OVERDUE)
    PAYABLE = (InvoiceStatus.SENT, InvoiceStatus.OVERDUE)

    def check_overdue(self, invoice: Invoice, now: datetime) -> Transition[Invoice]:
        """Lazy overdue evaluation, run on every save and read."""
        if invoice.status == InvoiceStatus.SENT and invoice.due_date is not None and now > invoice.due_date:
            updated = invoice.model_copy(deep=True)
            updated.status = InvoiceStatus.OVERDUE
            logger.info(f"Invoice {invoice.invoice_number} is now overdue (due {invoice.due_date:%Y-%m-%d})")
            return Transition(document=updated)
        return Transition(document=invoice, changed=False)

    def mark_sent(self, invoice: Invoice, now: datetime, recipients: Optional[List[str]] = None) -> Transition[Invoice]:
        """
        Send a draft, or re-send a sent/overdue invoice. Re-sending keeps the
        current status.
        """
        if invoice.status not in self.SENDABLE:
            raise InvalidTransition("send", invoice.status.value, "invoice")
        updated = invoice.model_copy(deep=True)
        if updated.status == InvoiceStatus.DRAFT:
            updated.status = InvoiceStatus.SENT
        _stamp_sent(updated, recipients, now)
        return Transition(document=updated)

    def mark_paid(self, invoice: Invoice, now: datetime, payment_method=None,
                  payment_reference: Optional[str] = None) -> Transition[Invoice]:
        if invoice.status not in self.PAYABLE:
            raise InvalidTransition("pay", invoice.status.value, "invoice")
        updated = invoice.model_copy(deep=True)
        updated.status = InvoiceStatus.PAID
        updated.payment_date = now
        if payment_method:
            updated.payment_method = payment_method
        if payment_reference:
            updated.payment_reference = payment_reference
        updated.reminder_settings.next_reminder_date = None
        return Transition(document=updated)

    def mark_viewed(self, invoice: Invoice, now: datetime) -> Transition[Invoice]:
        updated = invoice.model_copy(deep=True)
        updated.viewed_date = now
        updated.view_count += 1
        return Transition(document=updated)

    def record_download(self, invoice: Invoice) -> Transition[Invoice]:
        updated = invoice.model_copy(deep=True)
        updated.download_count += 1
        return Transition(document=updated)

    def cancel(self, invoice: Invoice, now: datetime) -> Transition[Invoice]:
        if invoice.is_terminal:
            raise InvalidTransition("cancel", invoice.status.value, "invoice")
        updated = invoice.model_copy(deep=True)
        updated.status = InvoiceStatus.CANCELLED
        updated.reminder_settings.next_reminder_date = None
        return Transition(document=updated)

    def duplicate(self, invoice: Invoice, now: datetime) -> Invoice:
        """
        Clone into a fresh draft. Identity, numbering, engagement and payment
        history are dropped; the reminder schedule is kept but not its dates.
        A copy of a recurring invoice joins the same series: it points at the
        series root and gets the following invoice date.
        """
        data = invoice.model_dump(exclude={
            "id", "invoice_number", "sent_date", "sent_to", "send_history",
            "viewed_date", "view_count", "download_count",
            "payment_method", "payment_date", "payment_reference", "payment_reminders",
            "pdf_url", "pdf_generated", "created_at", "updated_at", "status",
            "issue_date", "due_date", "reminder_settings",
            "next_invoice_date", "parent_invoice_id",
        })
        reminder_settings = ReminderSettings(
            enabled=invoice.reminder_settings.enabled,
            schedule=[rule.model_copy() for rule in invoice.reminder_settings.schedule],
        )
        parent_invoice_id = None
        next_invoice_date = None
        if invoice.is_recurring:
            parent_invoice_id = invoice.parent_invoice_id or invoice.id
            next_invoice_date = next_occurrence(now, invoice.recurring_frequency)
        return Invoice(
            **data,
            status=InvoiceStatus.DRAFT,
            issue_date=now,
            due_date=now + timedelta(days=settings.DEFAULT_PAYMENT_TERMS_DAYS),
            reminder_settings=reminder_settings,
            parent_invoice_id=parent_invoice_id,
            next_invoice_date=next_invoice_date,
            created_at=now,
            updated_at=now,
        )


class ProposalStateMachine:
    """
    draft -> generated -> sent -> viewed -> accepted | rejected.
    accepted and rejected are terminal.
    """

    SENDABLE = (ProposalStatus.DRAFT, ProposalStatus.GENERATED, ProposalStatus.SENT, ProposalStatus.VIEWED)
    DECIDABLE = (ProposalStatus.SENT, ProposalStatus.VIEWED)

    def mark_generated(self, proposal: Proposal, now: datetime) -> Transition[Proposal]:
        if proposal.status != ProposalStatus.DRAFT:
            raise InvalidTransition("generate", proposal.status.value, "proposal")
        updated = proposal.model_copy(deep=True)
        updated.status = ProposalStatus.GENERATED
        return Transition(document=updated)

    def mark_sent(self, proposal: Proposal, now: datetime, recipients: Optional[List[str]] = None) -> Transition[Proposal]:
        if proposal.status not in self.SENDABLE:
            raise InvalidTransition("send", proposal.status.value, "proposal")
        updated = proposal.model_copy(deep=True)
        if updated.status in (ProposalStatus.DRAFT, ProposalStatus.GENERATED):
            updated.status = ProposalStatus.SENT
        _stamp_sent(updated, recipients, now)
        return Transition(document=updated)

    def mark_viewed(self, proposal: Proposal, now: datetime) -> Transition[Proposal]:
        updated = proposal.model_copy(deep=True)
        updated.viewed_date = now
        updated.view_count += 1
        if updated.status == ProposalStatus.SENT:
            updated.status = ProposalStatus.VIEWED
        return Transition(document=updated)

    def accept(self, proposal: Proposal, now: datetime) -> Transition[Proposal]:
        return self._decide(proposal, ProposalStatus.ACCEPTED, "accept")

    def reject(self, proposal: Proposal, now: datetime) -> Transition[Proposal]:
        return self._decide(proposal, ProposalStatus.REJECTED, "reject")

    def _decide(self, proposal: Proposal, outcome: ProposalStatus, action: str) -> Transition[Proposal]:
        if proposal.status not in self.DECIDABLE:
            raise InvalidTransition(action, proposal.status.value, "proposal")
        updated = proposal.model_copy(deep=True)
        updated.status = outcome
        return Transition(document=updated)

    def duplicate(self, proposal: Proposal, now: datetime) -> Proposal:
        data = proposal.model_dump(exclude={
            "id", "proposal_number", "sent_date", "sent_to", "send_history",
            "viewed_date", "view_count", "pdf_url", "pdf_file_name",
            "created_at", "updated_at", "status", "issue_date",
        })
        return Proposal(
            **data,
            status=ProposalStatus.DRAFT,
            issue_date=now,
            created_at=now,
            updated_at=now,
        )

invoice_state_machine = InvoiceStateMachine()
proposal_state_machine = ProposalStateMachine()
