"""
Consent data models for medconsent
Consent records, history entries, templates and batch outcomes
"""

import json
from enum import Enum
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field

from ..crypto.hash import chain_hash


class HistoryAction(str, Enum):
    """State transitions recorded in a consent history"""
    GRANTED = "granted"
    GRANTED_BY_DELEGATE = "granted-by-delegate"
    REVOKED = "revoked"
    RENEWED = "renewed"


class ConsentKey(BaseModel):
    """Composite identity of a consent relationship"""
    model_config = ConfigDict(frozen=True)

    granter: str
    grantee: str
    category: str

    def __str__(self) -> str:
        return f"{self.granter}/{self.grantee}/{self.category}"


class ConsentRecord(BaseModel):
    """Individual consent record"""
    granter: str = Field(..., description="Data owner")
    grantee: str = Field(..., description="Data requester")
    category: str = Field(..., description="Record category")
    expiry: int = Field(..., description="Last logical time at which the consent is valid")
    active: bool = Field(default=True)
    granted_at: int = Field(default=0, description="Logical time of the grant")
    updated_at: int = Field(default=0, description="Logical time of the last transition")

    @property
    def key(self) -> ConsentKey:
        return ConsentKey(granter=self.granter, grantee=self.grantee, category=self.category)

    def is_valid(self, now: int) -> bool:
        """Check if consent is currently valid"""
        return self.active and now <= self.expiry


class HistoryEntry(BaseModel):
    """One immutable record of a consent state transition"""
    model_config = ConfigDict(frozen=True)

    time: int
    action: HistoryAction
    details: str = ""
    previous_hash: Optional[str] = None
    hash: Optional[str] = None

    def to_history_string(self) -> str:
        """Canonical form used for hash chaining"""
        return json.dumps(
            {"time": self.time, "action": self.action.value, "details": self.details},
            sort_keys=True, separators=(',', ':')
        )

    def compute_hash(self, previous_hash: str) -> str:
        return chain_hash(previous_hash, self.to_history_string().encode('utf-8'))

    def sealed(self, previous_hash: str) -> "HistoryEntry":
        """Return a copy linked to previous_hash"""
        return self.model_copy(update={
            "previous_hash": previous_hash,
            "hash": self.compute_hash(previous_hash),
        })


class ConsentTemplate(BaseModel):
    """Named, write-once bundle of categories for bulk grants"""
    model_config = ConfigDict(frozen=True)

    name: str
    categories: List[str] = Field(default_factory=list)
    duration: int
    description: str = ""
    created_by: Optional[str] = None
    created_at: int = 0


class BatchItemResult(BaseModel):
    """Outcome of one category inside a batch or template operation"""
    category: str
    ok: bool
    error: Optional[str] = None
    code: Optional[int] = None
    message: Optional[str] = None


class BatchResult(BaseModel):
    """
    Outcome of a batch or template operation.

    ``ok`` is always True: individual failures never fail the call.
    ``all_succeeded`` is the conjunction over the per-category outcomes.
    """
    ok: bool = True
    results: List[BatchItemResult] = Field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return all(item.ok for item in self.results)

    @property
    def failed_categories(self) -> List[str]:
        return [item.category for item in self.results if not item.ok]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "all_succeeded": self.all_succeeded,
            "results": [item.model_dump() for item in self.results],
        }
