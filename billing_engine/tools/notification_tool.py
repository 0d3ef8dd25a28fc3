import logging
from typing import List, Optional

from billing_engine.config import settings
from billing_engine.models.reminder import ReminderType

logger = logging.getLogger(__name__)

class NotificationError(Exception):
    """Delivery to at least one recipient failed."""

class NotificationTool:
    """
    Delivery boundary for reminders. Transport integrations plug in behind
    _send_email / _send_sms; the engine only records the outcome.
    """

    def __init__(self, sender: Optional[str] = None):
        self.sender = sender or settings.REMINDER_SENDER

    async def send_notification(self, recipients: List[str], subject: str, message: str,
                                channel: ReminderType = ReminderType.EMAIL):
        if not recipients:
            raise NotificationError("No recipients to notify")
        for recipient in recipients:
            if channel == ReminderType.SMS:
                await self._send_sms(recipient, message)
            else:
                await self._send_email(recipient, subject, message)

    async def _send_sms(self, recipient: str, message: str):
        logger.info(f"[SMS] To {recipient}: {message[:50]}...")

    async def _send_email(self, recipient: str, subject: str, body: str):
        logger.info(f"[EMAIL] From {self.sender or 'default sender'} to {recipient} | Subject: {subject}")

notification_tool = NotificationTool()
