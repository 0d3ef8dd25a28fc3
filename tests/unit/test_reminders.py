import pytest
from datetime import timedelta

from billing_engine.models.invoice import InvoiceStatus
from billing_engine.models.reminder import ReminderRule, ReminderStatus, ReminderType, ReminderSettings
from billing_engine.tools.reminders import reminder_scheduler

def test_seven_days_before_boundary_resolves_to_now(now):
    schedule = [ReminderRule(days_before_due=7)]
    assert reminder_scheduler.compute_next_reminder(schedule, now + timedelta(days=7), now) == now

def test_before_rule_outside_window_does_not_match(now):
    schedule = [ReminderRule(days_before_due=7)]
    assert reminder_scheduler.compute_next_reminder(schedule, now + timedelta(days=8), now) is None

def test_first_matching_rule_wins_over_closest(now):
    due = now + timedelta(days=2)
    schedule = [ReminderRule(days_before_due=7), ReminderRule(days_before_due=3)]
    assert reminder_scheduler.compute_next_reminder(schedule, due, now) == due - timedelta(days=7)

def test_after_due_rule(now):
    due = now - timedelta(days=2)
    schedule = [ReminderRule(days_before_due=3), ReminderRule(days_after_due=5, reminder_type=ReminderType.SMS)]

    assert reminder_scheduler.compute_next_reminder(schedule, due, now) == due + timedelta(days=5)
    assert reminder_scheduler.matching_rule(schedule, due, now).reminder_type == ReminderType.SMS

def test_after_due_rule_window_is_inclusive(now):
    due = now - timedelta(days=5)
    assert reminder_scheduler.compute_next_reminder([ReminderRule(days_after_due=5)], due, now) == now
    assert reminder_scheduler.compute_next_reminder([ReminderRule(days_after_due=4)], due, now) is None

def test_due_today_matches_nothing(now):
    schedule = [ReminderRule(days_before_due=1), ReminderRule(days_after_due=1)]
    assert reminder_scheduler.compute_next_reminder(schedule, now, now) is None

def test_no_due_date_or_schedule(now):
    assert reminder_scheduler.compute_next_reminder([ReminderRule(days_before_due=3)], None, now) is None
    assert reminder_scheduler.compute_next_reminder([], now + timedelta(days=1), now) is None

def test_rule_requires_an_offset():
    with pytest.raises(ValueError):
        ReminderRule()

def test_set_schedule_enables_and_computes(make_invoice, now):
    invoice = make_invoice(due_date=now + timedelta(days=5))
    invoice.reminder_settings.enabled = False

    updated = reminder_scheduler.set_schedule(invoice, [ReminderRule(days_before_due=7)], now)

    assert updated.reminder_settings.enabled is True
    assert updated.reminder_settings.next_reminder_date == invoice.due_date - timedelta(days=7)
    assert invoice.reminder_settings.schedule == []

def test_record_dispatch_appends_history_and_reschedules(make_invoice, now):
    invoice = make_invoice(status=InvoiceStatus.OVERDUE, due_date=now - timedelta(days=1))
    invoice.reminder_settings.schedule = [ReminderRule(days_after_due=3)]

    updated = reminder_scheduler.record_dispatch(invoice, now, ["billing@acme.test"], message="Please pay")

    record = updated.payment_reminders[-1]
    assert record.status == ReminderStatus.SENT
    assert record.sent_to == ["billing@acme.test"]
    assert record.sent_date == now
    assert updated.reminder_settings.last_reminder_date == now
    assert updated.reminder_settings.next_reminder_date == invoice.due_date + timedelta(days=3)
    assert invoice.payment_reminders == []

def test_record_failed_dispatch(make_invoice, now):
    invoice = make_invoice(status=InvoiceStatus.SENT)
    updated = reminder_scheduler.record_dispatch(invoice, now, ["x@acme.test"], status=ReminderStatus.FAILED)
    assert updated.payment_reminders[-1].status == ReminderStatus.FAILED
    assert updated.reminder_settings.next_reminder_date is None

def test_is_due(make_invoice, now):
    invoice = make_invoice(status=InvoiceStatus.SENT)
    invoice.reminder_settings = ReminderSettings(
        schedule=[ReminderRule(days_before_due=3)],
        next_reminder_date=now - timedelta(hours=1),
    )
    assert reminder_scheduler.is_due(invoice, now) is True

    invoice.reminder_settings.last_reminder_date = now - timedelta(hours=2)
    assert reminder_scheduler.is_due(invoice, now) is False

    invoice.reminder_settings.last_reminder_date = now - timedelta(days=1)
    assert reminder_scheduler.is_due(invoice, now) is True

    invoice.reminder_settings.next_reminder_date = now + timedelta(days=1)
    assert reminder_scheduler.is_due(invoice, now) is False

def test_is_due_ignores_drafts_paid_and_disabled(make_invoice, now):
    assert reminder_scheduler.is_due(make_invoice(status=InvoiceStatus.DRAFT), now) is False
    assert reminder_scheduler.is_due(make_invoice(status=InvoiceStatus.PAID), now) is False
    disabled = make_invoice(status=InvoiceStatus.SENT)
    disabled.reminder_settings.enabled = False
    assert reminder_scheduler.is_due(disabled, now) is False

def test_invoice_without_pending_reminder_is_not_due(make_invoice, now):
    assert reminder_scheduler.is_due(make_invoice(status=InvoiceStatus.SENT), now) is False

def test_fired_rule_is_not_chosen_again(now):
    due = now + timedelta(days=5)
    schedule = [ReminderRule(days_before_due=7), ReminderRule(days_before_due=3)]
    fired_at = due - timedelta(days=7)

    assert reminder_scheduler.compute_next_reminder(schedule, due, now, last_reminder=fired_at) is None

    later = due - timedelta(days=3)
    assert reminder_scheduler.compute_next_reminder(schedule, due, later, last_reminder=fired_at) == later

def test_dispatch_moves_on_to_the_next_rule(make_invoice, now):
    invoice = make_invoice(status=InvoiceStatus.SENT, due_date=now + timedelta(days=7))
    invoice.reminder_settings.schedule = [ReminderRule(days_before_due=7), ReminderRule(days_after_due=3)]

    updated = reminder_scheduler.record_dispatch(invoice, now, ["billing@acme.test"])

    assert updated.reminder_settings.next_reminder_date is None
    assert reminder_scheduler.refresh(updated, now + timedelta(days=1)).reminder_settings.next_reminder_date is None
    past_due = reminder_scheduler.refresh(updated, now + timedelta(days=8))
    assert past_due.reminder_settings.next_reminder_date == invoice.due_date + timedelta(days=3)

def test_default_message(make_invoice, now):
    invoice = make_invoice(invoice_number="INV-2508-001", total=136.5, due_date=now - timedelta(days=2))
    assert reminder_scheduler.default_message(invoice, now) == "Reminder: invoice INV-2508-001 for $136.50 is 2 days overdue."
