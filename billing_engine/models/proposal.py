from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field
from billing_engine.models.base import MongoModel, UTCDatetime
from billing_engine.models.document import FinancialFields, TrackingFields, format_amount

class ProposalStatus(str, Enum):
    DRAFT = "draft"
    GENERATED = "generated"
    SENT = "sent"
    VIEWED = "viewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

TERMINAL_PROPOSAL_STATUSES = frozenset({ProposalStatus.ACCEPTED, ProposalStatus.REJECTED})

class FormatType(str, Enum):
    PROFESSIONAL = "professional"
    CREATIVE = "creative"
    TECHNICAL = "technical"
    SIMPLE = "simple"

class Tone(str, Enum):
    PROFESSIONAL = "professional"
    FORMAL = "formal"
    FRIENDLY = "friendly"
    CONFIDENT = "confident"
    CONSULTATIVE = "consultative"

class ClientInfo(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None

class GenerationParams(BaseModel):
    format_type: FormatType = FormatType.PROFESSIONAL
    tone: Tone = Tone.PROFESSIONAL
    custom_instructions: Optional[str] = None

class Proposal(MongoModel, FinancialFields, TrackingFields):
    """Proposal sent to a lead. Priced with the same line items as invoices."""
    lead_id: str
    title: str = Field(..., min_length=1)
    proposal_number: Optional[str] = None
    issue_date: UTCDatetime = Field(default_factory=datetime.utcnow)

    client_info: ClientInfo = Field(default_factory=ClientInfo)
    generated_content: str
    generation_params: GenerationParams = Field(default_factory=GenerationParams)

    status: ProposalStatus = ProposalStatus.DRAFT

    pdf_url: Optional[str] = None
    pdf_file_name: Optional[str] = None

    created_by: str
    is_active: bool = True
    created_at: UTCDatetime = Field(default_factory=datetime.utcnow)
    updated_at: UTCDatetime = Field(default_factory=datetime.utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PROPOSAL_STATUSES

    @property
    def proposal_url(self) -> Optional[str]:
        return f"/proposals/{self.id}" if self.id else None

    def formatted_total(self) -> str:
        return format_amount(self.total, self.currency)
