"""
Pre-save hooks. Callers run these right before writing a document:

- new invoice:  number -> default due date -> first recurrence date -> totals -> overdue check -> reminder dates
- updated invoice: totals -> overdue check -> reminder dates
- proposals: number (new only) -> totals
"""

import logging
from datetime import datetime, timedelta

from billing_engine.config import settings
from billing_engine.models.invoice import Invoice, next_occurrence
from billing_engine.models.proposal import Proposal
from billing_engine.tools.calculator import financial_calculator
from billing_engine.tools.numbering import DocumentNumberGenerator
from billing_engine.tools.reminders import reminder_scheduler
from billing_engine.workflow.state_machine import invoice_state_machine

logger = logging.getLogger(__name__)

async def prepare_new_invoice(invoice: Invoice, generator: DocumentNumberGenerator, now: datetime) -> Invoice:
    await generator.assign(invoice)
    if invoice.due_date is None:
        invoice.due_date = invoice.issue_date + timedelta(days=settings.DEFAULT_PAYMENT_TERMS_DAYS)
    if invoice.is_recurring and invoice.next_invoice_date is None:
        invoice.next_invoice_date = next_occurrence(invoice.issue_date, invoice.recurring_frequency)
    return prepare_invoice_update(invoice, now)

def prepare_invoice_update(invoice: Invoice, now: datetime) -> Invoice:
    financial_calculator.apply_totals(invoice)
    invoice = invoice_state_machine.check_overdue(invoice, now).document
    if invoice.reminder_settings.enabled and not invoice.is_terminal:
        invoice = reminder_scheduler.refresh(invoice, now)
    return invoice

async def prepare_new_proposal(proposal: Proposal, generator: DocumentNumberGenerator, now: datetime) -> Proposal:
    await generator.assign(proposal)
    return prepare_proposal_update(proposal, now)

def prepare_proposal_update(proposal: Proposal, now: datetime) -> Proposal:
    financial_calculator.apply_totals(proposal)
    return proposal
