import logging
import secrets
import string
import time
from datetime import datetime
from typing import Optional, Union

from billing_engine.models.document import DocumentType
from billing_engine.models.invoice import Invoice
from billing_engine.models.proposal import Proposal
from billing_engine.monitoring.metrics import NumberingMetrics, numbering_metrics
from billing_engine.repositories.counter import SequenceStore

logger = logging.getLogger(__name__)

PREFIXES = {
    DocumentType.INVOICE: "INV",
    DocumentType.PROPOSAL: "PROP",
}

NUMBER_FIELDS = {
    DocumentType.INVOICE: "invoice_number",
    DocumentType.PROPOSAL: "proposal_number",
}

BASE36_UPPER = string.digits + string.ascii_uppercase

def period_code(issue_date: datetime) -> str:
    """YYMM of the issue date, e.g. 2508 for August 2025."""
    return f"{issue_date.year % 100:02d}{issue_date.month:02d}"

def bucket_key(document_type: DocumentType, issue_date: datetime) -> str:
    return f"{DocumentType(document_type).value}-{period_code(issue_date)}"

def format_number(document_type: DocumentType, issue_date: datetime, sequence: int) -> str:
    return f"{PREFIXES[DocumentType(document_type)]}-{period_code(issue_date)}-{sequence:03d}"

def emergency_number(document_type: DocumentType) -> str:
    """
    Non-sequential number used when the counter store fails. It is deliberately
    distinctive so degraded numbering stays visible downstream.
    """
    unix_millis = int(time.time() * 1000)
    micro_tail = str(time.monotonic_ns() // 1000)[-6:].zfill(6)
    suffix = "".join(secrets.choice(BASE36_UPPER) for _ in range(8))
    return f"{PREFIXES[DocumentType(document_type)]}-EMERGENCY-{unix_millis}-{micro_tail}-{suffix}"

class DocumentNumberGenerator:
    def __init__(self, store: SequenceStore, metrics: NumberingMetrics = numbering_metrics):
        self.store = store
        self.metrics = metrics

    async def generate(self, document_type: DocumentType, issue_date: datetime) -> str:
        """
        Allocate the next number for the issue date's bucket.
        Never raises: a failing counter yields an emergency number instead.
        """
        document_type = DocumentType(document_type)
        key = bucket_key(document_type, issue_date)
        try:
            sequence = await self.store.next_sequence(key)
        except Exception as e:
            number = emergency_number(document_type)
            logger.error(
                f"Counter allocation failed for bucket {key}: {e}. Using emergency number {number}",
                exc_info=True,
            )
            self.metrics.record_emergency(document_type.value)
            return number

        number = format_number(document_type, issue_date, sequence)
        self.metrics.record_allocated(document_type.value)
        logger.info(f"Generated {document_type.value} number {number}")
        return number

    async def assign(self, document: Union[Invoice, Proposal]) -> str:
        """Number a document once. An existing number is never replaced."""
        document_type = DocumentType.INVOICE if isinstance(document, Invoice) else DocumentType.PROPOSAL
        field = NUMBER_FIELDS[document_type]
        existing: Optional[str] = getattr(document, field)
        if existing:
            return existing
        number = await self.generate(document_type, document.issue_date)
        setattr(document, field, number)
        return number
