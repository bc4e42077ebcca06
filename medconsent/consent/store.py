"""
Consent state machine for medconsent
Grant, revoke, renew and check of (granter, grantee, category) consents
"""

from functools import partial
from typing import List, Optional
import structlog

from .categories import CategoryRegistry
from .clock import LogicalClock
from .delegation import DelegationRegistry
from .history import HistoryLog
from .models import ConsentKey, ConsentRecord, HistoryAction, HistoryEntry
from .storage import ConsentStateStorage
from ..audit.events import ConsentEventBus, ConsentEventType
from ..audit.logger import AccessAuditor
from ..constants import DELEGATE_NOTE_FORMAT, Limits
from ..exceptions import (
    AuditLogError,
    ConflictError,
    ConsentExpiredOrInactiveError,
    InvalidCategoryError,
    InvalidDurationError,
    NotAuthorizedError,
    NotDelegatedError,
    NotFoundError,
    Subject,
)
from ..utils.validators import validate_duration, validate_principal

logger = structlog.get_logger(__name__)


class ConsentStore:
    """
    Consent state machine.

    A key moves from absent to active, and from active to inactive on
    revoke. Keys are never deleted, an existing key can never be granted
    again, and only an active, unexpired consent can be renewed.

    Grant and revoke report to the audit collaborator inside the storage
    transaction, after the writes are accepted and before they commit; if
    the collaborator fails, the operation leaves no trace.
    """

    def __init__(self, storage: ConsentStateStorage, clock: LogicalClock,
                 categories: CategoryRegistry, delegations: DelegationRegistry,
                 history: HistoryLog, auditor: Optional[AccessAuditor] = None,
                 events: Optional[ConsentEventBus] = None):
        self.storage = storage
        self.clock = clock
        self.categories = categories
        self.delegations = delegations
        self.history = history
        self.auditor = auditor
        self.events = events

    # -- internals -----------------------------------------------------------

    def _audit(self, accessor: str, owner: str, category: str) -> None:
        if self.auditor is None:
            return
        try:
            ok = self.auditor.log_access(accessor, owner, category, True)
        except Exception as e:
            logger.error("Audit collaborator raised", accessor=accessor, owner=owner,
                         category=category, error=str(e))
            raise AuditLogError(reason=str(e)) from e
        if not ok:
            logger.error("Audit collaborator rejected access record", accessor=accessor,
                         owner=owner, category=category)
            raise AuditLogError(reason="audit collaborator reported failure")

    def _commit(self, record: ConsentRecord, entries: List[HistoryEntry],
                accessor: Optional[str] = None) -> None:
        """Persist a transition; an accessor makes the audit record a commit precondition"""
        before_commit = None
        if accessor is not None:
            before_commit = partial(self._audit, accessor, record.granter, record.category)
        self.storage.save_transition(record, entries, before_commit)

    @staticmethod
    def _expiry(base: int, duration: int) -> int:
        if base + duration > Limits.MAX_LOGICAL_TIME:
            raise InvalidDurationError(duration, Limits.MAX_LOGICAL_TIME - base)
        return base + duration

    def _emit(self, event_type: ConsentEventType, **identifiers) -> None:
        if self.events:
            self.events.emit(event_type, self.clock.now(), **identifiers)

    def _grant(self, caller: str, granter: str, grantee: str, category: str,
               duration: int, action: HistoryAction, details: str) -> ConsentRecord:
        validate_principal(grantee, "grantee")
        if not self.categories.is_valid(category):
            raise InvalidCategoryError(category)
        validate_duration(duration)

        key = ConsentKey(granter=granter, grantee=grantee, category=category)
        if self.storage.get_consent(key) is not None:
            raise ConflictError(Subject.CONSENT, str(key))

        now = self.clock.now()
        record = ConsentRecord(
            granter=granter,
            grantee=grantee,
            category=category,
            expiry=self._expiry(now, duration),
            active=True,
            granted_at=now,
            updated_at=now,
        )
        entries = self.history.stage(key, now, action, details)

        self._commit(record, entries, accessor=caller)

        logger.info("Granted consent", granter=granter, grantee=grantee, category=category,
                    caller=caller, expiry=record.expiry)
        self._emit(ConsentEventType.CONSENT_GRANTED, granter=granter, grantee=grantee,
                   category=category, caller=caller, expiry=record.expiry)
        return record

    # -- transitions ---------------------------------------------------------

    def grant(self, caller: str, granter: str, grantee: str, category: str,
              duration: int, notes: Optional[str] = None) -> ConsentRecord:
        """Grant consent as the granter itself"""
        validate_principal(caller, "caller")
        if caller != granter:
            raise NotAuthorizedError(caller, granter)
        return self._grant(caller, granter, grantee, category, duration,
                           HistoryAction.GRANTED, notes or "")

    def grant_as_delegate(self, caller: str, granter: str, grantee: str, category: str,
                          duration: int, notes: Optional[str] = None) -> ConsentRecord:
        """Grant consent on the granter's behalf"""
        validate_principal(caller, "caller")
        validate_principal(granter, "granter")
        if not self.delegations.is_authorized(granter, caller):
            logger.warning("Delegate grant refused", caller=caller, granter=granter,
                           category=category)
            raise NotDelegatedError(caller, granter)

        if caller == granter:
            return self._grant(caller, granter, grantee, category, duration,
                               HistoryAction.GRANTED, notes or "")

        tag = DELEGATE_NOTE_FORMAT.format(delegate=caller)
        details = f"{notes} {tag}" if notes else tag
        return self._grant(caller, granter, grantee, category, duration,
                           HistoryAction.GRANTED_BY_DELEGATE, details)

    def revoke(self, caller: str, granter: str, grantee: str, category: str) -> ConsentRecord:
        """Deactivate an existing consent; its expiry is left untouched"""
        key = ConsentKey(granter=granter, grantee=grantee, category=category)
        record = self.storage.get_consent(key)
        if record is None:
            raise NotFoundError(Subject.CONSENT, str(key))
        if not self.delegations.is_authorized(granter, caller):
            raise NotAuthorizedError(caller, granter)

        now = self.clock.now()
        updated = record.model_copy(update={"active": False, "updated_at": now})
        entries = self.history.stage(key, now, HistoryAction.REVOKED)

        self._commit(updated, entries, accessor=caller)

        logger.info("Revoked consent", granter=granter, grantee=grantee, category=category,
                    caller=caller)
        self._emit(ConsentEventType.CONSENT_REVOKED, granter=granter, grantee=grantee,
                   category=category, caller=caller)
        return updated

    def renew(self, caller: str, granter: str, grantee: str, category: str,
              extra_duration: int) -> ConsentRecord:
        """Extend an active, unexpired consent from its current expiry"""
        key = ConsentKey(granter=granter, grantee=grantee, category=category)
        record = self.storage.get_consent(key)
        if record is None:
            raise NotFoundError(Subject.CONSENT, str(key))

        now = self.clock.now()
        if not record.is_valid(now):
            raise ConsentExpiredOrInactiveError(str(key), record.expiry, record.active, now)
        validate_duration(extra_duration, "extra_duration")
        if not self.delegations.is_authorized(granter, caller):
            raise NotAuthorizedError(caller, granter)

        updated = record.model_copy(update={
            "expiry": self._expiry(record.expiry, extra_duration),
            "updated_at": now,
        })
        entries = self.history.stage(key, now, HistoryAction.RENEWED, str(extra_duration))
        self._commit(updated, entries)

        logger.info("Renewed consent", granter=granter, grantee=grantee, category=category,
                    caller=caller, expiry=updated.expiry)
        self._emit(ConsentEventType.CONSENT_RENEWED, granter=granter, grantee=grantee,
                   category=category, caller=caller, extra_duration=extra_duration,
                   expiry=updated.expiry)
        return updated

    # -- reads ---------------------------------------------------------------

    def check(self, granter: str, grantee: str, category: str) -> ConsentRecord:
        """Return the consent if it is valid now, raise otherwise"""
        key = ConsentKey(granter=granter, grantee=grantee, category=category)
        record = self.storage.get_consent(key)
        if record is None:
            raise NotFoundError(Subject.CONSENT, str(key))

        now = self.clock.now()
        if not record.is_valid(now):
            raise ConsentExpiredOrInactiveError(str(key), record.expiry, record.active, now)
        return record

    def has_valid_consent(self, granter: str, grantee: str, category: str) -> bool:
        record = self.get_details(granter, grantee, category)
        return record is not None and record.is_valid(self.clock.now())

    def get_details(self, granter: str, grantee: str, category: str) -> Optional[ConsentRecord]:
        return self.storage.get_consent(ConsentKey(granter=granter, grantee=grantee, category=category))

    def get_history(self, granter: str, grantee: str, category: str) -> List[HistoryEntry]:
        return self.history.get(ConsentKey(granter=granter, grantee=grantee, category=category))

    def verify_history(self, granter: str, grantee: str, category: str) -> bool:
        return self.history.verify(ConsentKey(granter=granter, grantee=grantee, category=category))
