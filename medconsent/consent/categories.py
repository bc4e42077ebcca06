"""
Category registry for medconsent
The set of record categories that may appear in a consent
"""

from typing import List, Optional
import structlog

from .storage import ConsentStateStorage
from ..audit.events import ConsentEventBus, ConsentEventType
from ..config import ConsentConfig, get_consent_config
from ..exceptions import ConflictError, Subject
from ..utils.validators import validate_category_label

logger = structlog.get_logger(__name__)


class CategoryRegistry:
    """Valid category labels, seeded once with the default categories"""

    def __init__(self, storage: ConsentStateStorage,
                 config: Optional[ConsentConfig] = None,
                 events: Optional[ConsentEventBus] = None):
        self.storage = storage
        self.config = config or get_consent_config()
        self.events = events

    @property
    def initialized(self) -> bool:
        # Categories are never removed and every add bootstraps first
        return self.storage.has_categories()

    def bootstrap(self) -> bool:
        """Seed the default categories; returns False if already initialized"""
        if self.initialized:
            return False

        defaults: List[str] = []
        for category in self.config.default_categories:
            validate_category_label(category, self.config.max_category_length)
            if category not in defaults:
                defaults.append(category)

        self.storage.add_categories(defaults)
        logger.info("Category registry initialized", categories=defaults)
        return True

    def is_valid(self, category: str) -> bool:
        """Check whether a category may be used in a grant"""
        if not isinstance(category, str):
            return False
        return self.storage.has_category(category)

    def add_category(self, category: str, time: int = 0) -> str:
        """Register a new category label"""
        self.bootstrap()
        validate_category_label(category, self.config.max_category_length)

        if self.storage.has_category(category):
            raise ConflictError(Subject.CATEGORY, category)

        self.storage.add_categories([category])
        logger.info("Added category", category=category)

        if self.events:
            self.events.emit(ConsentEventType.CATEGORY_ADDED, time, category=category)
        return category

    def list_categories(self) -> List[str]:
        return self.storage.list_categories()
