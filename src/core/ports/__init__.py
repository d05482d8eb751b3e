# secure-mailing-list: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.email import (
    EmailError,
    EmailSendError,
    EmailTemplate,
    MailSenderPort,
    RenderedEmail,
    is_success_status,
)
from src.core.ports.time import ClockPort

__all__ = [
    # Email
    "EmailError",
    "EmailSendError",
    "EmailTemplate",
    "MailSenderPort",
    "RenderedEmail",
    "is_success_status",
    # Time
    "ClockPort",
]
