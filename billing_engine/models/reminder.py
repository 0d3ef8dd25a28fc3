from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator
from billing_engine.models.base import UTCDatetime

class ReminderType(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    MANUAL = "manual"

class ReminderStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    PENDING = "pending"

class ReminderRule(BaseModel):
    """One schedule entry, relative to the due date."""
    days_before_due: Optional[int] = Field(None, ge=1)
    days_after_due: Optional[int] = Field(None, ge=1)
    reminder_type: ReminderType = ReminderType.EMAIL

    @model_validator(mode="after")
    def check_offset(self):
        if self.days_before_due is None and self.days_after_due is None:
            raise ValueError("A reminder rule needs days_before_due or days_after_due")
        if self.reminder_type == ReminderType.MANUAL:
            raise ValueError("Scheduled reminders are sent by email or sms")
        return self

class ReminderRecord(BaseModel):
    """Append-only history entry for a dispatched reminder."""
    sent_date: UTCDatetime = Field(default_factory=datetime.utcnow)
    reminder_type: ReminderType = ReminderType.EMAIL
    sent_to: List[str] = Field(default_factory=list)
    message: Optional[str] = None
    status: ReminderStatus = ReminderStatus.PENDING

class ReminderSettings(BaseModel):
    enabled: bool = True
    schedule: List[ReminderRule] = Field(default_factory=list)
    last_reminder_date: Optional[UTCDatetime] = None
    next_reminder_date: Optional[UTCDatetime] = None
