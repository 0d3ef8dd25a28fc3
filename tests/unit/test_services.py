import re
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from billing_engine.exceptions import InvalidTransition, NotFoundError, StoreUnavailable, ValidationError
from billing_engine.models.document import LineItem
from billing_engine.models.invoice import InvoiceStatus
from billing_engine.models.proposal import ProposalStatus
from billing_engine.models.reminder import ReminderRule
from billing_engine.services.invoices import invoice_service
from billing_engine.services.proposals import proposal_service

@pytest.mark.asyncio
async def test_create_numbers_totals_and_persists(mock_db, make_invoice, now):
    invoice = make_invoice(due_date=None)

    created = await invoice_service.create(invoice, now)

    assert created.invoice_number == "INV-2508-001"
    assert created.due_date == now + timedelta(days=30)
    assert created.total == 136.5
    assert created.id is not None
    mock_db.invoices.create.assert_awaited_once()

@pytest.mark.asyncio
async def test_create_with_counter_down_still_persists(mock_db, make_invoice, now):
    mock_db.sequence_store = MagicMock()
    mock_db.sequence_store.next_sequence = AsyncMock(side_effect=StoreUnavailable("down"))

    created = await invoice_service.create(make_invoice(), now)

    assert re.match(r"^INV-EMERGENCY-\d+-\d{6}-[0-9A-Z]{8}$", created.invoice_number)
    mock_db.invoices.create.assert_awaited_once()

@pytest.mark.asyncio
async def test_create_invalid_rates_is_not_persisted(mock_db, make_invoice, now):
    invoice = make_invoice()
    invoice.tax = 150  # bypasses field validation, as a raw assignment would

    with pytest.raises(ValidationError):
        await invoice_service.create(invoice, now)
    mock_db.invoices.create.assert_not_called()

@pytest.mark.asyncio
async def test_get_applies_lazy_overdue_check(mock_db, sample_invoice, now):
    sample_invoice.due_date = now - timedelta(days=1)
    mock_db.invoices.get.return_value = sample_invoice

    invoice = await invoice_service.get(sample_invoice.id, now)

    assert invoice.status == InvoiceStatus.OVERDUE
    mock_db.invoices.save.assert_awaited_once()

@pytest.mark.asyncio
async def test_get_unchanged_invoice_is_not_written(mock_db, sample_invoice, now):
    mock_db.invoices.get.return_value = sample_invoice
    await invoice_service.get(sample_invoice.id, now)
    mock_db.invoices.save.assert_not_called()

@pytest.mark.asyncio
async def test_get_missing_invoice(mock_db):
    with pytest.raises(NotFoundError):
        await invoice_service.get("64b7f0c2a1b2c3d4e5f60799")

@pytest.mark.asyncio
async def test_update_recomputes_totals(mock_db, sample_invoice, now):
    mock_db.invoices.get.return_value = sample_invoice

    updated = await invoice_service.update(
        sample_invoice.id,
        {"items": [{"description": "Audit", "quantity": 4, "rate": 25, "amount": 1}], "tax": 0, "discount": 0},
        now,
    )

    assert updated.items[0].amount == 100
    assert updated.total == 100
    assert updated.invoice_number == "INV-2508-001"

@pytest.mark.asyncio
async def test_update_rejects_lifecycle_fields(mock_db, sample_invoice):
    mock_db.invoices.get.return_value = sample_invoice
    with pytest.raises(ValidationError) as exc:
        await invoice_service.update(sample_invoice.id, {"status": "paid", "invoice_number": "X"})
    assert exc.value.extra["fields"] == ["invoice_number", "status"]

@pytest.mark.asyncio
async def test_update_rejects_invalid_values(mock_db, sample_invoice):
    mock_db.invoices.get.return_value = sample_invoice
    with pytest.raises(ValidationError):
        await invoice_service.update(sample_invoice.id, {"discount": 140})

@pytest.mark.asyncio
async def test_send_schedules_first_reminder(mock_db, make_invoice, now):
    draft = make_invoice(id="64b7f0c2a1b2c3d4e5f60702", due_date=now + timedelta(days=5))
    draft.reminder_settings.schedule = [ReminderRule(days_before_due=7)]
    mock_db.invoices.get.return_value = draft

    sent = await invoice_service.send(draft.id, ["billing@acme.test"], now)

    assert sent.status == InvoiceStatus.SENT
    assert sent.reminder_settings.next_reminder_date == draft.due_date - timedelta(days=7)
    mock_db.invoices.save.assert_awaited_once()

@pytest.mark.asyncio
async def test_pay_cancelled_invoice_is_rejected(mock_db, make_invoice, now):
    mock_db.invoices.get.return_value = make_invoice(id="64b7f0c2a1b2c3d4e5f60703", status=InvoiceStatus.CANCELLED)
    with pytest.raises(InvalidTransition):
        await invoice_service.pay("64b7f0c2a1b2c3d4e5f60703", now=now)
    mock_db.invoices.save.assert_not_called()

@pytest.mark.asyncio
async def test_duplicate_creates_new_draft_without_touching_source(mock_db, sample_invoice, now):
    mock_db.invoices.get.return_value = sample_invoice
    before = sample_invoice.model_dump()

    copy = await invoice_service.duplicate(sample_invoice.id, now)

    assert copy.status == InvoiceStatus.DRAFT
    assert copy.invoice_number == "INV-2508-001"
    assert sample_invoice.model_dump() == before
    mock_db.invoices.save.assert_not_called()

@pytest.mark.asyncio
async def test_set_reminder_schedule_persists(mock_db, sample_invoice, now):
    mock_db.invoices.get.return_value = sample_invoice

    updated = await invoice_service.set_reminder_schedule(sample_invoice.id, [ReminderRule(days_before_due=30)], now)

    assert updated.reminder_settings.enabled is True
    assert updated.reminder_settings.next_reminder_date == now
    mock_db.invoices.save.assert_awaited_once()

@pytest.mark.asyncio
async def test_proposal_create_and_accept(mock_db, make_proposal, now):
    created = await proposal_service.create(make_proposal(), now)
    assert created.proposal_number == "PROP-2508-001"
    assert created.total == 130

    created.status = ProposalStatus.SENT
    mock_db.proposals.get.return_value = created
    accepted = await proposal_service.accept(created.id, now)
    assert accepted.status == ProposalStatus.ACCEPTED

@pytest.mark.asyncio
async def test_proposal_update_recomputes(mock_db, make_proposal, now):
    proposal = make_proposal(id="64b7f0c2a1b2c3d4e5f60704")
    mock_db.proposals.get.return_value = proposal

    updated = await proposal_service.update(proposal.id, {"items": [LineItem(description="MVP", quantity=1, rate=5000)], "tax": 20}, now)

    assert updated.subtotal == 5000
    assert updated.total == 6000

@pytest.mark.asyncio
async def test_create_recurring_invoice_sets_first_next_date(mock_db, make_invoice, now):
    created = await invoice_service.create(make_invoice(is_recurring=True, recurring_frequency="weekly"), now)
    assert created.next_invoice_date == now + timedelta(days=7)

@pytest.mark.asyncio
async def test_get_by_number_applies_lazy_overdue_check(mock_db, sample_invoice, now):
    sample_invoice.due_date = now - timedelta(days=2)
    mock_db.invoices.get_by_invoice_number = AsyncMock(return_value=sample_invoice)

    invoice = await invoice_service.get_by_number("INV-2508-001", now)

    assert invoice.status == InvoiceStatus.OVERDUE
    mock_db.invoices.get_by_invoice_number.assert_awaited_once_with("INV-2508-001")

@pytest.mark.asyncio
async def test_get_by_unknown_number(mock_db):
    mock_db.invoices.get_by_invoice_number = AsyncMock(return_value=None)
    mock_db.proposals.get_by_proposal_number = AsyncMock(return_value=None)
    with pytest.raises(NotFoundError):
        await invoice_service.get_by_number("INV-2508-404")
    with pytest.raises(NotFoundError):
        await proposal_service.get_by_number("PROP-2508-404")

@pytest.mark.asyncio
async def test_payment_history_uses_window(mock_db, make_invoice, now):
    paid = make_invoice(status=InvoiceStatus.PAID, payment_date=now - timedelta(days=1))
    mock_db.invoices.find_payment_history = AsyncMock(return_value=[paid])

    history = await invoice_service.payment_history(days=14, created_by="user-1", now=now)

    assert history == [paid]
    mock_db.invoices.find_payment_history.assert_awaited_once_with(now, 14, "user-1")

@pytest.mark.asyncio
async def test_list_proposals_for_lead(mock_db, make_proposal):
    mock_db.proposals.find_for_lead = AsyncMock(return_value=[make_proposal()])
    proposals = await proposal_service.list_for_lead("lead-1")
    assert [p.lead_id for p in proposals] == ["lead-1"]
