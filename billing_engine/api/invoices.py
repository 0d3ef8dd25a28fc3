from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field, model_validator

from billing_engine.models.document import Currency, LineItem
from billing_engine.models.invoice import ClientAddress, Invoice, InvoiceTemplate, PaymentMethod, RecurringFrequency
from billing_engine.models.reminder import ReminderRule
from billing_engine.services.invoices import invoice_service

router = APIRouter(prefix="/api/invoices", tags=["Invoices"])

# Request Models
class InvoiceCreate(BaseModel):
    title: str
    description: Optional[str] = None
    client_id: str
    client_name: str
    client_email: str
    client_address: Optional[ClientAddress] = None
    issue_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    template: InvoiceTemplate = InvoiceTemplate.MODERN
    items: List[LineItem] = []
    tax: float = Field(0.0, ge=0, le=100)
    discount: float = Field(0.0, ge=0, le=100)
    currency: Currency = Currency.USD
    notes: Optional[str] = None
    terms_and_conditions: Optional[str] = None
    is_recurring: bool = False
    recurring_frequency: Optional[RecurringFrequency] = None
    reminder_schedule: List[ReminderRule] = []
    created_by: str

    @model_validator(mode="after")
    def check_recurrence(self):
        if self.is_recurring and self.recurring_frequency is None:
            raise ValueError("A recurring invoice needs a recurring_frequency")
        return self

class InvoiceUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    client_address: Optional[ClientAddress] = None
    due_date: Optional[datetime] = None
    template: Optional[InvoiceTemplate] = None
    items: Optional[List[LineItem]] = None
    tax: Optional[float] = None
    discount: Optional[float] = None
    currency: Optional[Currency] = None
    notes: Optional[str] = None
    terms_and_conditions: Optional[str] = None
    is_recurring: Optional[bool] = None
    recurring_frequency: Optional[RecurringFrequency] = None
    next_invoice_date: Optional[datetime] = None

class SendRequest(BaseModel):
    recipients: List[str] = []

class PaymentRequest(BaseModel):
    payment_method: Optional[PaymentMethod] = None
    payment_reference: Optional[str] = None

class ReminderScheduleRequest(BaseModel):
    schedule: List[ReminderRule] = Field(..., min_length=1)

@router.post("/", response_model=Invoice, status_code=201)
async def create_invoice(payload: InvoiceCreate):
    data = payload.model_dump(exclude={"reminder_schedule"}, exclude_none=True)
    invoice = Invoice(**data)
    if payload.reminder_schedule:
        invoice.reminder_settings.schedule = payload.reminder_schedule
    return await invoice_service.create(invoice)

@router.get("/payments/history", response_model=List[Invoice])
async def payment_history(days: int = Query(30, ge=1), created_by: Optional[str] = None):
    return await invoice_service.payment_history(days, created_by)

@router.get("/number/{invoice_number}", response_model=Invoice)
async def get_invoice_by_number(invoice_number: str):
    return await invoice_service.get_by_number(invoice_number)

@router.get("/{invoice_id}", response_model=Invoice)
async def get_invoice(invoice_id: str):
    return await invoice_service.get(invoice_id)

@router.put("/{invoice_id}", response_model=Invoice)
async def update_invoice(invoice_id: str, payload: InvoiceUpdate):
    changes = payload.model_dump(exclude_unset=True)
    return await invoice_service.update(invoice_id, changes)

@router.post("/{invoice_id}/send", response_model=Invoice)
async def send_invoice(invoice_id: str, payload: SendRequest):
    return await invoice_service.send(invoice_id, payload.recipients)

@router.post("/{invoice_id}/pay", response_model=Invoice)
async def pay_invoice(invoice_id: str, payload: PaymentRequest):
    return await invoice_service.pay(invoice_id, payload.payment_method, payload.payment_reference)

@router.post("/{invoice_id}/view", response_model=Invoice)
async def view_invoice(invoice_id: str):
    return await invoice_service.view(invoice_id)

@router.post("/{invoice_id}/download", response_model=Invoice)
async def download_invoice(invoice_id: str):
    return await invoice_service.download(invoice_id)

@router.post("/{invoice_id}/cancel", response_model=Invoice)
async def cancel_invoice(invoice_id: str):
    return await invoice_service.cancel(invoice_id)

@router.post("/{invoice_id}/duplicate", response_model=Invoice, status_code=201)
async def duplicate_invoice(invoice_id: str):
    return await invoice_service.duplicate(invoice_id)

@router.put("/{invoice_id}/reminders", response_model=Invoice)
async def set_reminder_schedule(invoice_id: str, payload: ReminderScheduleRequest):
    return await invoice_service.set_reminder_schedule(invoice_id, payload.schedule)

@router.delete("/{invoice_id}/reminders", response_model=Invoice)
async def disable_reminders(invoice_id: str):
    return await invoice_service.disable_reminders(invoice_id)
