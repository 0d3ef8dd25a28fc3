from typing import List, Union
from pydantic import BaseModel
from billing_engine.exceptions import ValidationError
from billing_engine.models.document import LineItem
from billing_engine.models.invoice import Invoice
from billing_engine.models.proposal import Proposal

class FinancialTotals(BaseModel):
    subtotal: float
    tax: float
    tax_amount: float
    discount: float
    discount_amount: float
    total: float

class FinancialCalculator:
    """
    Recomputes line amounts and document totals.
    Values keep full float precision; rounding is a display concern.
    """

    def recompute(self, items: List[LineItem], tax: float = 0.0, discount: float = 0.0) -> FinancialTotals:
        self._validate_rate("tax", tax)
        self._validate_rate("discount", discount)

        subtotal = 0.0
        for index, item in enumerate(items):
            if item.quantity < 0 or item.rate < 0:
                raise ValidationError(
                    f"Line item {index + 1} has a negative quantity or rate",
                    extra={"item": index, "quantity": item.quantity, "rate": item.rate},
                )
            # Caller-supplied amounts are discarded
            item.amount = item.quantity * item.rate
            subtotal += item.amount

        tax_amount = subtotal * tax / 100
        discount_amount = subtotal * discount / 100
        return FinancialTotals(
            subtotal=subtotal,
            tax=tax,
            tax_amount=tax_amount,
            discount=discount,
            discount_amount=discount_amount,
            total=subtotal + tax_amount - discount_amount,
        )

    def apply_totals(self, document: Union[Invoice, Proposal]) -> FinancialTotals:
        """Recompute and write the totals onto the document."""
        totals = self.recompute(document.items, document.tax, document.discount)
        document.subtotal = totals.subtotal
        document.tax_amount = totals.tax_amount
        document.discount_amount = totals.discount_amount
        document.total = totals.total
        return totals

    def _validate_rate(self, name: str, value: float):
        if value is None or not 0 <= value <= 100:
            raise ValidationError(
                f"{name.capitalize()} must be between 0 and 100 percent, got {value}",
                extra={"field": name, "value": value},
            )

financial_calculator = FinancialCalculator()
