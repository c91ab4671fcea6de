from .core import (  # noqa: F401
    TimeStampedModel,
    Profile,
    Lead,
    Opportunity,
    Ticket,
    Company,
    Contract,
    Receivable,
    ActiveSession,
)
from .alerts import AlertRule, Alert, NotificationPreference  # noqa: F401
