"""
Audit Subpackage for medconsent

Provides the default access audit collaborator and the consent event
bus used to publish every mutating operation.
"""

from .events import ConsentEvent, ConsentEventBus, ConsentEventType
from .logger import AccessAuditor, AccessAuditLogger, AuditEvent, InMemoryAuditStorage

__all__ = [
    "ConsentEvent",
    "ConsentEventBus",
    "ConsentEventType",
    "AccessAuditor",
    "AccessAuditLogger",
    "AuditEvent",
    "InMemoryAuditStorage",
]
