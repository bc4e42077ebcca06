"""
Consent management module for medconsent
Time-bounded, revocable, delegable consent between data owners and requesters
"""

from .models import (
    ConsentKey, ConsentRecord, HistoryAction, HistoryEntry,
    ConsentTemplate, BatchItemResult, BatchResult,
)
from .clock import LogicalClock
from .categories import CategoryRegistry
from .delegation import DelegateSet, DelegationRegistry
from .history import BoundedHistory, HistoryLog
from .store import ConsentStore
from .templates import TemplateStore
from .batch import BatchOperations
from .storage import ConsentStateStorage, InMemoryConsentStateStorage
from .engine import ConsentEngine
from .manager import ConsentManager

__all__ = [
    "ConsentKey",
    "ConsentRecord",
    "HistoryAction",
    "HistoryEntry",
    "ConsentTemplate",
    "BatchItemResult",
    "BatchResult",
    "LogicalClock",
    "CategoryRegistry",
    "DelegateSet",
    "DelegationRegistry",
    "BoundedHistory",
    "HistoryLog",
    "ConsentStore",
    "TemplateStore",
    "BatchOperations",
    "ConsentStateStorage",
    "InMemoryConsentStateStorage",
    "ConsentEngine",
    "ConsentManager",
]
