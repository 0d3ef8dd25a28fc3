import math
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from billing_engine.models.document import format_amount
from billing_engine.models.invoice import Invoice, InvoiceStatus
from billing_engine.models.reminder import (
    ReminderRecord,
    ReminderRule,
    ReminderStatus,
    ReminderType,
)

REMINDABLE_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.OVERDUE)

def _days_until(due_date: datetime, now: datetime) -> int:
    return math.ceil((due_date - now).total_seconds() / (24 * 3600))

class ReminderScheduler:
    """
    Decides when an invoice's next payment reminder is due.
    Delivery is left to the caller.

    Rules are evaluated in schedule order and the first match wins. Both offsets
    use inclusive windows: a days_before_due=N rule matches while
    0 < days_until_due <= N, a days_after_due=N rule while
    0 < days_past_due <= N. A rule whose trigger date is at or before the last
    reminder has already fired and is skipped.

    The result depends on `now`, so the periodic job refreshes each candidate
    before deciding whether it is due.
    """

    def compute_next_reminder(self, schedule: List[ReminderRule], due_date: Optional[datetime],
                              now: datetime, last_reminder: Optional[datetime] = None) -> Optional[datetime]:
        match = self._select(schedule, due_date, now, last_reminder)
        return match[1] if match else None

    def matching_rule(self, schedule: List[ReminderRule], due_date: Optional[datetime],
                      now: datetime, last_reminder: Optional[datetime] = None) -> Optional[ReminderRule]:
        """First unfired rule whose window contains the current offset from the due date."""
        match = self._select(schedule, due_date, now, last_reminder)
        return match[0] if match else None

    def _select(self, schedule: List[ReminderRule], due_date: Optional[datetime], now: datetime,
                last_reminder: Optional[datetime]) -> Optional[Tuple[ReminderRule, datetime]]:
        if due_date is None:
            return None
        for rule in schedule:
            trigger = self._trigger(rule, due_date, now)
            if trigger is None:
                continue
            if last_reminder is not None and trigger <= last_reminder:
                continue
            return rule, trigger
        return None

    def _trigger(self, rule: ReminderRule, due_date: datetime, now: datetime) -> Optional[datetime]:
        if rule.days_before_due and self._before_window(rule, due_date, now):
            return due_date - timedelta(days=rule.days_before_due)
        if rule.days_after_due and self._after_window(rule, due_date, now):
            return due_date + timedelta(days=rule.days_after_due)
        return None

    def _before_window(self, rule: ReminderRule, due_date: datetime, now: datetime) -> bool:
        days_until_due = _days_until(due_date, now)
        return 0 < days_until_due <= rule.days_before_due

    def _after_window(self, rule: ReminderRule, due_date: datetime, now: datetime) -> bool:
        days_until_due = _days_until(due_date, now)
        return days_until_due < 0 and abs(days_until_due) <= rule.days_after_due

    def _next_for(self, invoice: Invoice, now: datetime) -> Optional[datetime]:
        settings = invoice.reminder_settings
        return self.compute_next_reminder(settings.schedule, invoice.due_date, now, settings.last_reminder_date)

    def refresh(self, invoice: Invoice, now: datetime) -> Invoice:
        """Re-derive next_reminder_date for `now`. Returns a copy."""
        updated = invoice.model_copy(deep=True)
        updated.reminder_settings.next_reminder_date = self._next_for(updated, now)
        return updated

    def set_schedule(self, invoice: Invoice, schedule: List[ReminderRule], now: datetime) -> Invoice:
        updated = invoice.model_copy(deep=True)
        settings = updated.reminder_settings
        settings.schedule = [ReminderRule.model_validate(rule) for rule in schedule]
        settings.enabled = True
        settings.next_reminder_date = self._next_for(updated, now)
        return updated

    def disable(self, invoice: Invoice) -> Invoice:
        updated = invoice.model_copy(deep=True)
        updated.reminder_settings.enabled = False
        updated.reminder_settings.next_reminder_date = None
        return updated

    def record_dispatch(self, invoice: Invoice, now: datetime, sent_to: List[str],
                        message: Optional[str] = None,
                        reminder_type: ReminderType = ReminderType.EMAIL,
                        status: ReminderStatus = ReminderStatus.SENT) -> Invoice:
        """Append a reminder to the history and move the schedule forward. Returns a copy."""
        updated = invoice.model_copy(deep=True)
        updated.payment_reminders.append(ReminderRecord(
            sent_date=now,
            reminder_type=reminder_type,
            sent_to=list(sent_to),
            message=message,
            status=status,
        ))
        settings = updated.reminder_settings
        settings.last_reminder_date = now
        settings.next_reminder_date = self._next_for(updated, now) if settings.enabled else None
        return updated

    def is_due(self, invoice: Invoice, now: datetime) -> bool:
        """Whether the periodic job should remind this invoice's client now."""
        settings = invoice.reminder_settings
        if not settings.enabled or not invoice.is_active or invoice.status not in REMINDABLE_STATUSES:
            return False
        if settings.next_reminder_date is None or settings.next_reminder_date > now:
            return False
        last = settings.last_reminder_date
        return last is None or last.date() != now.date()

    def default_message(self, invoice: Invoice, now: datetime) -> str:
        days = invoice.days_until_due(now)
        amount = format_amount(invoice.total, invoice.currency)
        number = invoice.invoice_number or invoice.title
        if days is None:
            return f"Reminder: invoice {number} for {amount} is awaiting payment."
        if days > 0:
            return f"Reminder: invoice {number} for {amount} is due in {days} day{'s' if days != 1 else ''}."
        if days == 0:
            return f"Reminder: invoice {number} for {amount} is due today."
        overdue = abs(days)
        return f"Reminder: invoice {number} for {amount} is {overdue} day{'s' if overdue != 1 else ''} overdue."

reminder_scheduler = ReminderScheduler()
