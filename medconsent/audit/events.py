"""
Consent events for medconsent

Structured records emitted by every mutating operation for external
observers and indexers. Nothing inside the engine depends on delivery.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional
import structlog

from ..utils.ids import generate_event_id

logger = structlog.get_logger(__name__)


class ConsentEventType(str, Enum):
    """Kinds of mutating operations"""
    CONSENT_GRANTED = "consent-granted"
    CONSENT_REVOKED = "consent-revoked"
    CONSENT_RENEWED = "consent-renewed"
    CATEGORY_ADDED = "category-added"
    DELEGATE_ADDED = "delegate-added"
    DELEGATE_REMOVED = "delegate-removed"
    TEMPLATE_CREATED = "template-created"
    TEMPLATE_APPLIED = "template-applied"
    BATCH_GRANTED = "batch-granted"
    BATCH_REVOKED = "batch-revoked"


@dataclass
class ConsentEvent:
    """
    Represents one mutating operation.

    Attributes:
        event_type: Operation kind
        time: Logical time at which the operation ran
        identifiers: Every identifier the operation touched
        event_id: Unique identifier for the event
        emitted_at: Wall-clock time of emission
    """
    event_type: ConsentEventType
    time: int
    identifiers: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=generate_event_id)
    emitted_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for logging/indexing"""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "time": self.time,
            "identifiers": self.identifiers,
            "emitted_at": self.emitted_at.isoformat(),
        }


EventSubscriber = Callable[[ConsentEvent], None]


class ConsentEventBus:
    """Fan-out of consent events to subscribers, with a bounded recent buffer"""

    def __init__(self, max_recent: int = 1000):
        self._subscribers: List[EventSubscriber] = []
        self._recent: Deque[ConsentEvent] = deque(maxlen=max_recent)

    def subscribe(self, subscriber: EventSubscriber) -> None:
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: EventSubscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    def emit(self, event_type: ConsentEventType, time: int, **identifiers: Any) -> ConsentEvent:
        """Build, record and deliver an event"""
        event = ConsentEvent(event_type=event_type, time=time, identifiers=identifiers)

        self._recent.append(event)

        logger.info("Consent event", event_type=event_type.value, time=time, **identifiers)

        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception as e:
                # Delivery failures never affect the operation that emitted the event
                logger.warning("Event subscriber failed",
                               event_type=event_type.value,
                               event_id=event.event_id,
                               error=str(e))
        return event

    def recent(self, event_type: Optional[ConsentEventType] = None,
               limit: int = 100) -> List[ConsentEvent]:
        """Most recent events, newest last"""
        events = list(self._recent)
        if event_type:
            events = [e for e in events if e.event_type == event_type]
        return events[-limit:] if limit else events
