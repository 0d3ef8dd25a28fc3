import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

from billing_engine.models.document import LineItem
from billing_engine.models.invoice import Invoice, InvoiceStatus
from billing_engine.models.proposal import Proposal
from billing_engine.monitoring.metrics import numbering_metrics
from billing_engine.repositories.counter import InMemoryCounterStore

NOW = datetime(2025, 8, 15, 12, 0, 0)

@pytest.fixture
def now():
    return NOW

@pytest.fixture(autouse=True)
def reset_metrics():
    numbering_metrics.reset()
    yield
    numbering_metrics.reset()

def _fake_create(model):
    model.id = "64b7f0c2a1b2c3d4e5f60718"
    return model

def _make_db_mock():
    mock = MagicMock()
    mock.sequence_store = InMemoryCounterStore()
    mock.invoices.create = AsyncMock(side_effect=_fake_create)
    mock.invoices.save = AsyncMock(side_effect=lambda model: model)
    mock.invoices.get = AsyncMock(return_value=None)
    mock.invoices.find_needing_reminders = AsyncMock(return_value=[])
    mock.invoices.find_overdue_candidates = AsyncMock(return_value=[])
    mock.proposals.create = AsyncMock(side_effect=_fake_create)
    mock.proposals.save = AsyncMock(side_effect=lambda model: model)
    mock.proposals.get = AsyncMock(return_value=None)
    return mock

@pytest.fixture
def mock_db():
    mock = _make_db_mock()
    with patch("billing_engine.services.invoices.db", mock), \
         patch("billing_engine.services.proposals.db", mock), \
         patch("billing_engine.services.reminder_monitor.db", mock):
        yield mock

@pytest.fixture
def sample_items():
    return [
        LineItem(description="Design work", quantity=2, rate=50),
        LineItem(description="Hosting", quantity=1, rate=30),
    ]

@pytest.fixture
def make_invoice(sample_items):
    def _make(**overrides) -> Invoice:
        data = dict(
            title="Website redesign",
            client_id="client-1",
            client_name="Acme Ltd",
            client_email="billing@acme.test",
            created_by="user-1",
            issue_date=NOW,
            due_date=NOW + timedelta(days=30),
            items=[item.model_copy() for item in sample_items],
            tax=10,
            discount=5,
        )
        data.update(overrides)
        return Invoice(**data)
    return _make

@pytest.fixture
def sample_invoice(make_invoice):
    return make_invoice(
        id="64b7f0c2a1b2c3d4e5f60701",
        invoice_number="INV-2508-001",
        status=InvoiceStatus.SENT,
        sent_date=NOW - timedelta(days=1),
        sent_to=["billing@acme.test"],
    )

@pytest.fixture
def make_proposal(sample_items):
    def _make(**overrides) -> Proposal:
        data = dict(
            lead_id="lead-1",
            title="Mobile app proposal",
            generated_content="Executive summary...",
            created_by="user-1",
            issue_date=NOW,
            items=[item.model_copy() for item in sample_items],
        )
        data.update(overrides)
        return Proposal(**data)
    return _make
