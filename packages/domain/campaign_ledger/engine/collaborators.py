"""Interfaces of the external collaborators the ledger talks to.

KYC status is read-only input to the withdrawal gate. Notifications are
fire-and-forget: the ledger hands committed domain events to a sink and the
sink owns formatting and delivery.
"""

import threading
from typing import Dict, List, Optional, Protocol, Type

from ..schemas import DomainEvent, KycStatus


class KycService(Protocol):
    def get_status(self, founder_id: str) -> Optional[KycStatus]:
        ...


class NotificationSink(Protocol):
    def publish(self, event: DomainEvent) -> None:
        ...


class StaticKycDirectory:
    """KYC statuses held in memory. Unknown founders are pending."""

    def __init__(self, statuses: Optional[Dict[str, KycStatus]] = None):
        self._statuses: Dict[str, KycStatus] = dict(statuses or {})
        self._lock = threading.Lock()

    def set_status(self, founder_id: str, status: KycStatus) -> None:
        with self._lock:
            self._statuses[founder_id] = KycStatus(status)

    def get_status(self, founder_id: str) -> Optional[KycStatus]:
        with self._lock:
            return self._statuses.get(founder_id, KycStatus.PENDING)


class RecordingNotificationSink:
    """Keeps every published event; used in tests and local runs."""

    def __init__(self):
        self.events: List[DomainEvent] = []
        self._lock = threading.Lock()

    def publish(self, event: DomainEvent) -> None:
        with self._lock:
            self.events.append(event)

    def of_type(self, event_cls: Type[DomainEvent]) -> List[DomainEvent]:
        with self._lock:
            return [e for e in self.events if isinstance(e, event_cls)]
