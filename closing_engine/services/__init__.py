"""Service layer: repository, audit sink and the closing workflows."""

from .audit import AuditSink, InMemoryAuditSink, NotificationDispatcher, NullNotificationDispatcher
from .repository import ClosingRepository
from .soa_service import Actor, SOAService
from .shortfall_service import ShortfallService
from .summary_service import SummaryService

__all__ = [
    "AuditSink",
    "InMemoryAuditSink",
    "NotificationDispatcher",
    "NullNotificationDispatcher",
    "ClosingRepository",
    "Actor",
    "SOAService",
    "ShortfallService",
    "SummaryService",
]
