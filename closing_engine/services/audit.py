"""Audit-log sink and notification dispatcher used by the closing services."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models.statements import AuditLogEntry, SOAVersion


class AuditSink(ABC):
    """Destination for audit-log entries."""

    @abstractmethod
    def record(self, entry: AuditLogEntry) -> None:
        """Persist one audit entry."""


class InMemoryAuditSink(AuditSink):
    """Audit sink that keeps entries in a list (testing and embedding)."""

    def __init__(self):
        self._entries: List[AuditLogEntry] = []

    def record(self, entry: AuditLogEntry) -> None:
        self._entries.append(entry)

    def entries(self, entity_id: Optional[int] = None, action: Optional[str] = None) -> List[AuditLogEntry]:
        return [
            e for e in self._entries
            if (entity_id is None or e.entity_id == entity_id)
            and (action is None or e.action == action)
        ]

    def count(self) -> int:
        return len(self._entries)


class NotificationDispatcher(ABC):
    """Informed whenever a new SOA version is appended."""

    @abstractmethod
    def soa_version_created(self, version: SOAVersion) -> None:
        """Handle a new SOA version."""


class NullNotificationDispatcher(NotificationDispatcher):
    def soa_version_created(self, version: SOAVersion) -> None:
        return None
