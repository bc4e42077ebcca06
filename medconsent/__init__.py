"""
medconsent
Consent-management engine for personal health record categories
"""

__version__ = "0.1.0"

# Core exports
from .config import ConsentConfig, get_consent_config

# Consent management
from .consent import (
    ConsentKey, ConsentRecord, HistoryAction, HistoryEntry, ConsentTemplate,
    BatchResult, LogicalClock, ConsentStore, ConsentEngine, ConsentManager,
    ConsentStateStorage, InMemoryConsentStateStorage,
)

# Audit and events
from .audit import AccessAuditor, AccessAuditLogger, ConsentEvent, ConsentEventBus, ConsentEventType

# Errors
from .exceptions import (
    ConsentEngineError, ErrorKind, Subject,
    NotAuthorizedError, NotDelegatedError, InvalidCategoryError, InvalidDurationError,
    ConflictError, NotFoundError, ConsentExpiredOrInactiveError, TemplateNotFoundError,
    CapacityExceededError, InvalidTemplateError, ValidationError, AuditLogError, StorageError,
)

__all__ = [
    # Config
    "ConsentConfig",
    "get_consent_config",

    # Consent
    "ConsentKey",
    "ConsentRecord",
    "HistoryAction",
    "HistoryEntry",
    "ConsentTemplate",
    "BatchResult",
    "LogicalClock",
    "ConsentStore",
    "ConsentEngine",
    "ConsentManager",
    "ConsentStateStorage",
    "InMemoryConsentStateStorage",

    # Audit
    "AccessAuditor",
    "AccessAuditLogger",
    "ConsentEvent",
    "ConsentEventBus",
    "ConsentEventType",

    # Errors
    "ConsentEngineError",
    "ErrorKind",
    "Subject",
    "NotAuthorizedError",
    "NotDelegatedError",
    "InvalidCategoryError",
    "InvalidDurationError",
    "ConflictError",
    "NotFoundError",
    "ConsentExpiredOrInactiveError",
    "TemplateNotFoundError",
    "CapacityExceededError",
    "InvalidTemplateError",
    "ValidationError",
    "AuditLogError",
    "StorageError",
]
