"""
Delegation registry for medconsent
Principals allowed to grant, revoke and renew on a granter's behalf
"""

from typing import Iterator, List, Optional
import structlog

from .storage import ConsentStateStorage
from ..audit.events import ConsentEventBus, ConsentEventType
from ..config import ConsentConfig, get_consent_config
from ..exceptions import CapacityExceededError, ConflictError, NotFoundError, Subject
from ..utils.validators import validate_principal

logger = structlog.get_logger(__name__)


class DelegateSet:
    """Ordered, duplicate-free set of delegates with a fixed capacity"""

    def __init__(self, owner: str, capacity: int, members: Optional[List[str]] = None):
        members = list(members or [])
        if len(members) > capacity:
            raise ValueError(f"{len(members)} delegates exceed capacity {capacity}")
        self.owner = owner
        self.capacity = capacity
        self._members = members

    def add(self, delegate: str) -> None:
        if len(self._members) >= self.capacity:
            raise CapacityExceededError(self.owner, self.capacity)
        if delegate in self._members:
            raise ConflictError(Subject.DELEGATE, delegate)
        self._members.append(delegate)

    def remove(self, delegate: str) -> None:
        if delegate not in self._members:
            raise NotFoundError(Subject.DELEGATE, delegate)
        self._members.remove(delegate)

    def as_list(self) -> List[str]:
        return list(self._members)

    def __contains__(self, delegate: object) -> bool:
        return delegate in self._members

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._members))


class DelegationRegistry:
    """Per-granter delegate sets and the authorization predicate"""

    def __init__(self, storage: ConsentStateStorage,
                 config: Optional[ConsentConfig] = None,
                 events: Optional[ConsentEventBus] = None):
        self.storage = storage
        self.config = config or get_consent_config()
        self.events = events

    def _load(self, granter: str) -> DelegateSet:
        return DelegateSet(granter, self.config.max_delegates, self.storage.get_delegates(granter))

    def add_delegate(self, granter: str, delegate: str, time: int = 0) -> List[str]:
        """Append a delegate to the granter's set"""
        validate_principal(granter, "granter")
        validate_principal(delegate, "delegate")

        delegates = self._load(granter)
        delegates.add(delegate)
        self.storage.put_delegates(granter, delegates.as_list())

        logger.info("Added delegate", granter=granter, delegate=delegate, count=len(delegates))
        if self.events:
            self.events.emit(ConsentEventType.DELEGATE_ADDED, time,
                             granter=granter, delegate=delegate)
        return delegates.as_list()

    def remove_delegate(self, granter: str, delegate: str, time: int = 0) -> List[str]:
        """Remove a delegate, keeping the order of the others"""
        delegates = self._load(granter)
        delegates.remove(delegate)
        self.storage.put_delegates(granter, delegates.as_list())

        logger.info("Removed delegate", granter=granter, delegate=delegate, count=len(delegates))
        if self.events:
            self.events.emit(ConsentEventType.DELEGATE_REMOVED, time,
                             granter=granter, delegate=delegate)
        return delegates.as_list()

    def get_delegates(self, granter: str) -> List[str]:
        return self.storage.get_delegates(granter)

    def is_authorized(self, granter: str, caller: str) -> bool:
        """True iff caller is the granter or one of its current delegates"""
        if caller == granter:
            return True
        return caller in self._load(granter)
