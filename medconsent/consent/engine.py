"""
Consent engine for medconsent
Wires storage, clock, registries and the consent state machine together
"""

from typing import Optional
import structlog

from .batch import BatchOperations
from .categories import CategoryRegistry
from .clock import LogicalClock
from .delegation import DelegationRegistry
from .history import HistoryLog
from .storage import ConsentStateStorage, InMemoryConsentStateStorage
from .store import ConsentStore
from .templates import TemplateStore
from ..audit.events import ConsentEventBus
from ..audit.logger import AccessAuditor, AccessAuditLogger
from ..config import ConsentConfig, get_consent_config

logger = structlog.get_logger(__name__)


class ConsentEngine:
    """Composition root; runs the category bootstrap once at construction"""

    def __init__(self, storage: Optional[ConsentStateStorage] = None,
                 clock: Optional[LogicalClock] = None,
                 auditor: Optional[AccessAuditor] = None,
                 events: Optional[ConsentEventBus] = None,
                 config: Optional[ConsentConfig] = None):
        self.config = config or get_consent_config()
        self.storage = storage or self._default_storage(self.config)
        self.clock = clock or LogicalClock(self.config.initial_block_height)
        self.auditor = auditor if auditor is not None else AccessAuditLogger()
        self.events = events or ConsentEventBus()

        self.categories = CategoryRegistry(self.storage, self.config, self.events)
        self.delegations = DelegationRegistry(self.storage, self.config, self.events)
        self.history = HistoryLog(self.storage, self.config)
        self.consents = ConsentStore(
            self.storage, self.clock, self.categories, self.delegations,
            self.history, self.auditor, self.events,
        )
        self.templates = TemplateStore(self.storage, self.consents, self.clock,
                                       self.config, self.events)
        self.batch = BatchOperations(self.consents, self.config, self.events)

        self.categories.bootstrap()
        logger.info("Consent engine ready", storage=type(self.storage).__name__,
                    height=self.clock.now())

    @staticmethod
    def _default_storage(config: ConsentConfig) -> ConsentStateStorage:
        if config.database_url:
            return ConsentStateStorage(config.database_url)
        return InMemoryConsentStateStorage()
