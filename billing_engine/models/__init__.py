from billing_engine.models.base import MongoModel, UTCDatetime
from billing_engine.models.counter import Counter
from billing_engine.models.document import DocumentType, Currency, LineItem, SendRecord, FinancialFields, TrackingFields, format_amount
from billing_engine.models.reminder import ReminderType, ReminderStatus, ReminderRule, ReminderRecord, ReminderSettings
from billing_engine.models.invoice import Invoice, InvoiceStatus, InvoiceTemplate, PaymentMethod, ClientAddress, RecurringFrequency, next_occurrence, TERMINAL_INVOICE_STATUSES
from billing_engine.models.proposal import Proposal, ProposalStatus, ClientInfo, GenerationParams, TERMINAL_PROPOSAL_STATUSES
