import pytest
from billing_engine.exceptions import ValidationError
from billing_engine.models.document import LineItem
from billing_engine.tools.calculator import financial_calculator

def test_recompute_reference_scenario(sample_items):
    totals = financial_calculator.recompute(sample_items, tax=10, discount=5)

    assert totals.subtotal == 130
    assert totals.tax_amount == 13
    assert totals.discount_amount == 6.5
    assert totals.total == 136.5
    assert [item.amount for item in sample_items] == [100, 30]

def test_recompute_overwrites_supplied_amounts():
    items = [LineItem(description="Consulting", quantity=3, rate=120, amount=1.0)]
    totals = financial_calculator.recompute(items)
    assert items[0].amount == 360
    assert totals.total == 360

def test_recompute_is_idempotent():
    items = [
        LineItem(description="Hours", quantity=7.5, rate=33.33),
        LineItem(description="Licence", quantity=3, rate=19.99),
    ]
    first = financial_calculator.recompute(items, tax=17.5, discount=2.25)
    second = financial_calculator.recompute(items, tax=17.5, discount=2.25)
    assert first == second

@pytest.mark.parametrize("rows,tax,discount", [
    ([(1, 10.0)], 0, 0),
    ([(2.5, 19.99), (4, 0.01)], 20, 0),
    ([(3, 333.33), (1, 0.1), (0, 50)], 7.25, 12.5),
    ([], 10, 5),
])
def test_total_matches_closed_form(rows, tax, discount):
    items = [LineItem(description=f"row {i}", quantity=q, rate=r) for i, (q, r) in enumerate(rows)]
    totals = financial_calculator.recompute(items, tax, discount)
    expected = sum(q * r for q, r in rows) * (1 + tax / 100 - discount / 100)
    assert totals.total == pytest.approx(expected)

@pytest.mark.parametrize("tax,discount", [(-1, 0), (0, 101), (100.5, 0)])
def test_recompute_rejects_out_of_range_rates(sample_items, tax, discount):
    with pytest.raises(ValidationError):
        financial_calculator.recompute(sample_items, tax, discount)

def test_recompute_rejects_negative_line_values():
    item = LineItem.model_construct(description="Refund", quantity=1, rate=-5, amount=0)
    with pytest.raises(ValidationError) as exc:
        financial_calculator.recompute([item])
    assert exc.value.extra["item"] == 0

def test_apply_totals_writes_onto_document(make_invoice):
    invoice = make_invoice(subtotal=999, total=999)
    financial_calculator.apply_totals(invoice)
    assert (invoice.subtotal, invoice.tax_amount, invoice.discount_amount, invoice.total) == (130, 13, 6.5, 136.5)
