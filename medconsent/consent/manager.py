from threading import RLock
from typing import Any, Dict, List, Optional

import structlog

from .engine import ConsentEngine
from .models import ConsentRecord


logger = structlog.get_logger(__name__)


def _consent_dict(record: Optional[ConsentRecord]) -> Optional[Dict[str, Any]]:
    return record.model_dump() if record is not None else None


class ConsentManager:
    """Serialized, JSON-facing facade over a consent engine.

    Every verb runs under one re-entrant lock, so concurrent callers observe
    the operations in a single total order.
    """

    def __init__(self, engine: Optional[ConsentEngine] = None):
        self.engine = engine or ConsentEngine()
        self._lock = RLock()

    # -- consents --------------------------------------------------------------

    async def grant(self, caller: str, grantee: str, category: str, duration: int,
                    notes: Optional[str] = None) -> Dict[str, Any]:
        with self._lock:
            record = self.engine.consents.grant(caller, caller, grantee, category, duration, notes)
        return {"ok": True, "consent": _consent_dict(record)}

    async def grant_as_delegate(self, caller: str, granter: str, grantee: str, category: str,
                                duration: int, notes: Optional[str] = None) -> Dict[str, Any]:
        with self._lock:
            record = self.engine.consents.grant_as_delegate(
                caller, granter, grantee, category, duration, notes
            )
        return {"ok": True, "consent": _consent_dict(record)}

    async def revoke(self, caller: str, grantee: str, category: str,
                     granter: Optional[str] = None) -> Dict[str, Any]:
        with self._lock:
            record = self.engine.consents.revoke(caller, granter or caller, grantee, category)
        return {"ok": True, "consent": _consent_dict(record)}

    async def renew(self, caller: str, grantee: str, category: str, extra_duration: int,
                    granter: Optional[str] = None) -> Dict[str, Any]:
        with self._lock:
            record = self.engine.consents.renew(
                caller, granter or caller, grantee, category, extra_duration
            )
        return {"ok": True, "consent": _consent_dict(record)}

    async def check(self, granter: str, grantee: str, category: str) -> Dict[str, Any]:
        with self._lock:
            record = self.engine.consents.check(granter, grantee, category)
            now = self.engine.clock.now()
        return {"valid": True, "now": now, "consent": _consent_dict(record)}

    async def get_details(self, granter: str, grantee: str, category: str) -> Dict[str, Any]:
        with self._lock:
            record = self.engine.consents.get_details(granter, grantee, category)
        return {"consent": _consent_dict(record)}

    async def get_history(self, granter: str, grantee: str, category: str) -> Dict[str, Any]:
        with self._lock:
            entries = self.engine.consents.get_history(granter, grantee, category)
            verified = self.engine.consents.verify_history(granter, grantee, category)
        return {
            "history": [entry.model_dump(mode="json") for entry in entries],
            "verified": verified,
        }

    # -- categories ------------------------------------------------------------

    async def add_category(self, category: str) -> Dict[str, Any]:
        with self._lock:
            self.engine.categories.add_category(category, self.engine.clock.now())
        return {"ok": True, "category": category}

    async def is_valid_category(self, category: str) -> Dict[str, Any]:
        with self._lock:
            valid = self.engine.categories.is_valid(category)
        return {"category": category, "valid": valid}

    async def list_categories(self) -> Dict[str, Any]:
        with self._lock:
            categories = self.engine.categories.list_categories()
        return {"categories": categories}

    # -- delegations -----------------------------------------------------------

    async def add_delegate(self, caller: str, delegate: str) -> Dict[str, Any]:
        with self._lock:
            delegates = self.engine.delegations.add_delegate(
                caller, delegate, self.engine.clock.now()
            )
        return {"ok": True, "granter": caller, "delegates": delegates}

    async def remove_delegate(self, caller: str, delegate: str) -> Dict[str, Any]:
        with self._lock:
            delegates = self.engine.delegations.remove_delegate(
                caller, delegate, self.engine.clock.now()
            )
        return {"ok": True, "granter": caller, "delegates": delegates}

    async def list_delegates(self, granter: str) -> Dict[str, Any]:
        with self._lock:
            delegates = self.engine.delegations.get_delegates(granter)
        return {"granter": granter, "delegates": delegates}

    # -- templates -------------------------------------------------------------

    async def create_template(self, caller: str, name: str, categories: List[str],
                              duration: int, description: str = "") -> Dict[str, Any]:
        with self._lock:
            template = self.engine.templates.create(
                name, categories, duration, description, creator=caller
            )
        return {"ok": True, "template": template.model_dump()}

    async def get_template(self, name: str) -> Dict[str, Any]:
        with self._lock:
            template = self.engine.templates.get(name)
        return {"template": template.model_dump() if template else None}

    async def apply_template(self, caller: str, grantee: str, name: str) -> Dict[str, Any]:
        with self._lock:
            result = self.engine.templates.apply(caller, grantee, name)
        return result.to_dict()

    # -- batches ---------------------------------------------------------------

    async def batch_grant(self, caller: str, grantee: str, categories: List[str],
                          duration: int, notes: Optional[str] = None) -> Dict[str, Any]:
        with self._lock:
            result = self.engine.batch.batch_grant(caller, grantee, categories, duration, notes)
        return result.to_dict()

    async def batch_revoke(self, caller: str, grantee: str,
                           categories: List[str]) -> Dict[str, Any]:
        with self._lock:
            result = self.engine.batch.batch_revoke(caller, grantee, categories)
        return result.to_dict()

    # -- clock -----------------------------------------------------------------

    async def get_clock(self) -> Dict[str, Any]:
        with self._lock:
            return {"now": self.engine.clock.now()}

    async def advance_clock(self, blocks: int = 1) -> Dict[str, Any]:
        with self._lock:
            now = self.engine.clock.advance(blocks)
        logger.info("Logical clock advanced", blocks=blocks, now=now)
        return {"now": now}
