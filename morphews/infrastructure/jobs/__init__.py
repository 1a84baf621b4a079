"""Jobs periódicos executados pelo scheduler."""

from .auto_close_service import AutoCloseService, run_auto_close_job
from .order_expiry_job import run_order_expiry_job
from .scheduled_messages_service import ScheduledMessagesService, run_scheduled_messages_job

__all__ = [
    "AutoCloseService",
    "ScheduledMessagesService",
    "run_auto_close_job",
    "run_order_expiry_job",
    "run_scheduled_messages_job",
]
