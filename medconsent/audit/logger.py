"""
Access audit logging for medconsent
Default audit collaborator: an append-only, hash-chained access trail
"""

from typing import Dict, Any, Optional, List, Protocol
from datetime import datetime, UTC
from pydantic import BaseModel, Field
import json
import structlog

from ..crypto.hash import HashChain, chain_hash
from ..utils.ids import generate_audit_id

logger = structlog.get_logger(__name__)


class AccessAuditor(Protocol):
    """Interface of the audit collaborator invoked by grant and revoke"""

    def log_access(self, accessor: str, owner: str, category: str, success: bool) -> bool:
        ...


class AuditEvent(BaseModel):
    """Individual audit event"""
    id: str = Field(default_factory=generate_audit_id)
    event_type: str = "data_access"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    accessor: str
    owner: str
    category: str
    success: bool

    details: Dict[str, Any] = Field(default_factory=dict)

    # Integrity
    hash: Optional[str] = None
    previous_hash: Optional[str] = None

    def to_audit_string(self) -> str:
        """Convert to string for hashing"""
        audit_data = {
            "id": self.id,
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat(),
            "accessor": self.accessor,
            "owner": self.owner,
            "category": self.category,
            "success": self.success,
            "details": self.details
        }

        return json.dumps(audit_data, sort_keys=True, separators=(',', ':'))

    def compute_hash(self, previous_hash: str) -> str:
        """Compute hash for integrity verification"""
        return chain_hash(previous_hash, self.to_audit_string().encode('utf-8'))


class InMemoryAuditStorage:
    """In-memory audit storage"""

    def __init__(self):
        self.events: List[AuditEvent] = []

    def store_event(self, event: AuditEvent) -> bool:
        """Store audit event"""
        self.events.append(event)
        return True

    def get_events(self, owner: str = None, accessor: str = None,
                   category: str = None, limit: int = 100) -> List[AuditEvent]:
        """Get filtered audit events, oldest first"""
        filtered_events = self.events

        if owner:
            filtered_events = [e for e in filtered_events if e.owner == owner]

        if accessor:
            filtered_events = [e for e in filtered_events if e.accessor == accessor]

        if category:
            filtered_events = [e for e in filtered_events if e.category == category]

        return filtered_events[-limit:] if limit else list(filtered_events)


class AccessAuditLogger:
    """Audit trail with hash-chain integrity protection"""

    def __init__(self, storage_backend: Optional[Any] = None):
        self.storage = storage_backend or InMemoryAuditStorage()
        self.hash_chain = HashChain()
        self.genesis_hash = self.hash_chain.current_hash

    def log_event(self, accessor: str, owner: str,
                  category: str, success: bool,
                  details: Dict[str, Any] = None) -> Optional[AuditEvent]:
        """Log an audit event; returns None if storage rejected it"""
        event = AuditEvent(
            accessor=accessor,
            owner=owner,
            category=category,
            success=success,
            details=details or {}
        )

        event.previous_hash = self.hash_chain.current_hash
        event.hash = event.compute_hash(event.previous_hash)

        if not self.storage.store_event(event):
            logger.error("Audit storage rejected event", event_id=event.id)
            return None

        self.hash_chain.add_entry(event.to_audit_string().encode('utf-8'))

        logger.info("Audit event logged",
                    accessor=accessor,
                    owner=owner,
                    category=category,
                    success=success)

        return event

    def log_access(self, accessor: str, owner: str, category: str, success: bool) -> bool:
        """Record an access decision; returns False if the trail could not be written"""
        event = self.log_event(
            accessor=accessor,
            owner=owner,
            category=category,
            success=success,
        )
        return event is not None

    def get_events(self, owner: str = None, accessor: str = None,
                   category: str = None, limit: int = 100) -> List[AuditEvent]:
        """Retrieve audit events with filters"""
        return self.storage.get_events(owner, accessor, category, limit)

    def verify_integrity(self, events: List[AuditEvent] = None) -> bool:
        """Verify audit trail integrity"""
        if events is None:
            events = self.storage.get_events(limit=0)

        if not events:
            return True

        previous_hash = self.genesis_hash
        for event in events:
            expected_hash = event.compute_hash(previous_hash)

            if event.previous_hash != previous_hash or event.hash != expected_hash:
                logger.error("Audit integrity violation",
                             event_id=event.id,
                             expected_hash=expected_hash,
                             actual_hash=event.hash)
                return False

            previous_hash = event.hash

        logger.info("Audit integrity verified", event_count=len(events))
        return True
