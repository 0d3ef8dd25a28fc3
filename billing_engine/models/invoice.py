import calendar
import math
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator
from billing_engine.models.base import MongoModel, UTCDatetime
from billing_engine.models.document import FinancialFields, TrackingFields, format_amount
from billing_engine.models.reminder import ReminderRecord, ReminderSettings

SECONDS_PER_DAY = 24 * 3600

class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"

TERMINAL_INVOICE_STATUSES = frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED})

class InvoiceTemplate(str, Enum):
    MODERN = "modern"
    CLASSIC = "classic"
    MINIMAL = "minimal"
    CORPORATE = "corporate"
    CREATIVE = "creative"

class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    CASH = "cash"
    CHECK = "check"
    OTHER = "other"

class RecurringFrequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

MONTHS_PER_PERIOD = {
    RecurringFrequency.MONTHLY: 1,
    RecurringFrequency.QUARTERLY: 3,
    RecurringFrequency.YEARLY: 12,
}

def next_occurrence(start: datetime, frequency: RecurringFrequency) -> datetime:
    """One period after `start`. Month ends clamp, so Jan 31 + 1 month is Feb 28/29."""
    if frequency == RecurringFrequency.WEEKLY:
        return start + timedelta(weeks=1)
    month_index = start.month - 1 + MONTHS_PER_PERIOD[frequency]
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)

class ClientAddress(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None

class Invoice(MongoModel, FinancialFields, TrackingFields):
    """
    Invoice document. Owns its line items, totals and reminder settings.
    """
    invoice_number: Optional[str] = Field(None, max_length=50)
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)

    # Client snapshot
    client_id: str
    client_name: str
    client_email: str
    client_address: Optional[ClientAddress] = None

    # Dates & status
    issue_date: UTCDatetime = Field(default_factory=datetime.utcnow)
    due_date: Optional[UTCDatetime] = None
    status: InvoiceStatus = InvoiceStatus.DRAFT
    template: InvoiceTemplate = InvoiceTemplate.MODERN

    notes: Optional[str] = Field(None, max_length=1000)
    terms_and_conditions: Optional[str] = Field(None, max_length=2000)

    # Payment
    payment_method: Optional[PaymentMethod] = None
    payment_date: Optional[UTCDatetime] = None
    payment_reference: Optional[str] = None

    # Reminders
    payment_reminders: List[ReminderRecord] = Field(default_factory=list)
    reminder_settings: ReminderSettings = Field(default_factory=ReminderSettings)

    # Recurrence
    is_recurring: bool = False
    recurring_frequency: Optional[RecurringFrequency] = None
    next_invoice_date: Optional[UTCDatetime] = None
    parent_invoice_id: Optional[str] = None

    download_count: int = Field(0, ge=0)
    pdf_url: Optional[str] = None
    pdf_generated: bool = False

    # System
    created_by: str
    is_active: bool = True
    created_at: UTCDatetime = Field(default_factory=datetime.utcnow)
    updated_at: UTCDatetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode="after")
    def check_recurrence(self):
        if self.is_recurring and self.recurring_frequency is None:
            raise ValueError("A recurring invoice needs a recurring_frequency")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_INVOICE_STATUSES

    def days_until_due(self, now: datetime) -> Optional[int]:
        """Whole days until the due date, rounded up. Negative once past due."""
        if self.due_date is None:
            return None
        return math.ceil((self.due_date - now).total_seconds() / SECONDS_PER_DAY)

    def is_overdue(self, now: datetime) -> bool:
        if self.is_terminal:
            return False
        days = self.days_until_due(now)
        return days is not None and days < 0

    def formatted_total(self) -> str:
        return format_amount(self.total, self.currency)

    model_config = {
        "json_schema_extra": {
            "example": {
                "invoice_number": "INV-2508-001",
                "title": "Website redesign",
                "client_id": "65f1c0ffee",
                "client_name": "Acme Ltd",
                "client_email": "billing@acme.test",
                "status": "sent",
                "items": [{"description": "Design", "quantity": 2, "rate": 50}],
                "tax": 10,
                "discount": 5,
                "created_by": "user-1"
            }
        }
    }
