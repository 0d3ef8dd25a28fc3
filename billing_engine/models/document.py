from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field
from billing_engine.models.base import UTCDatetime

class DocumentType(str, Enum):
    INVOICE = "invoice"
    PROPOSAL = "proposal"

class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"
    INR = "INR"
    JPY = "JPY"

CURRENCY_SYMBOLS = {
    Currency.USD: "$",
    Currency.EUR: "€",
    Currency.GBP: "£",
    Currency.CAD: "CA$",
    Currency.AUD: "A$",
    Currency.INR: "₹",
    Currency.JPY: "¥",
}

# Minor-unit digits used for display; JPY has no minor unit
CURRENCY_DECIMALS = {Currency.JPY: 0}

def format_amount(amount: float, currency: Currency = Currency.USD) -> str:
    """Display form of an amount, e.g. "$1,234.50". Rounding only happens here."""
    currency = Currency(currency)
    decimals = CURRENCY_DECIMALS.get(currency, 2)
    sign = "-" if amount < 0 else ""
    return f"{sign}{CURRENCY_SYMBOLS[currency]}{abs(amount):,.{decimals}f}"

class LineItem(BaseModel):
    """A single billable row. `amount` is always derived from quantity * rate."""
    description: str = Field(..., min_length=1, max_length=200)
    quantity: float = Field(..., ge=0)
    rate: float = Field(..., ge=0)
    amount: float = Field(0.0, ge=0, description="Derived on every recompute, never trusted as input")

class SendRecord(BaseModel):
    """One entry of a document's send history."""
    sent_date: UTCDatetime = Field(default_factory=datetime.utcnow)
    sent_to: List[str] = Field(default_factory=list)

class FinancialFields(BaseModel):
    """
    Totals embedded in every billing document.
    `tax` and `discount` are percentages; the *_amount fields and `total`
    are written by the calculator only.
    """
    items: List[LineItem] = Field(default_factory=list)
    subtotal: float = Field(0.0, ge=0)
    tax: float = Field(0.0, ge=0, le=100)
    tax_amount: float = Field(0.0, ge=0)
    discount: float = Field(0.0, ge=0, le=100)
    discount_amount: float = Field(0.0, ge=0)
    total: float = Field(0.0, ge=0)
    currency: Currency = Currency.USD

class TrackingFields(BaseModel):
    sent_date: Optional[UTCDatetime] = None
    sent_to: List[str] = Field(default_factory=list)
    send_history: List[SendRecord] = Field(default_factory=list)
    viewed_date: Optional[UTCDatetime] = None
    view_count: int = Field(0, ge=0)
