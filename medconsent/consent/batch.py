"""
Batch consent operations for medconsent
Sequential grant/revoke over a bounded list of categories
"""

from typing import List, Optional
import structlog

from .models import BatchResult
from .store import ConsentStore
from .templates import item_result
from ..audit.events import ConsentEventBus, ConsentEventType
from ..config import ConsentConfig, get_consent_config
from ..exceptions import ConsentEngineError
from ..utils.validators import validate_category_list

logger = structlog.get_logger(__name__)


class BatchOperations:
    """Apply grant or revoke once per category, in list order"""

    def __init__(self, consents: ConsentStore, config: Optional[ConsentConfig] = None,
                 events: Optional[ConsentEventBus] = None):
        self.consents = consents
        self.config = config or get_consent_config()
        self.events = events

    def batch_grant(self, caller: str, grantee: str, categories: List[str], duration: int,
                    notes: Optional[str] = None) -> BatchResult:
        """Grant each category from caller to grantee; failures do not stop the batch"""
        categories = validate_category_list(categories, self.config.max_batch_categories)

        result = BatchResult()
        for category in categories:
            try:
                self.consents.grant(caller, caller, grantee, category, duration, notes=notes)
                result.results.append(item_result(category))
            except ConsentEngineError as e:
                logger.warning("Batch grant item failed", caller=caller, grantee=grantee,
                               category=category, error=e.kind.value)
                result.results.append(item_result(category, e))

        logger.info("Batch grant finished", caller=caller, grantee=grantee,
                    count=len(categories), all_succeeded=result.all_succeeded)
        if self.events:
            self.events.emit(ConsentEventType.BATCH_GRANTED, self.consents.clock.now(),
                             granter=caller, grantee=grantee, categories=categories,
                             failed=result.failed_categories)
        return result

    def batch_revoke(self, caller: str, grantee: str, categories: List[str]) -> BatchResult:
        """Revoke each category granted by caller to grantee"""
        categories = validate_category_list(categories, self.config.max_batch_categories)

        result = BatchResult()
        for category in categories:
            try:
                self.consents.revoke(caller, caller, grantee, category)
                result.results.append(item_result(category))
            except ConsentEngineError as e:
                logger.warning("Batch revoke item failed", caller=caller, grantee=grantee,
                               category=category, error=e.kind.value)
                result.results.append(item_result(category, e))

        logger.info("Batch revoke finished", caller=caller, grantee=grantee,
                    count=len(categories), all_succeeded=result.all_succeeded)
        if self.events:
            self.events.emit(ConsentEventType.BATCH_REVOKED, self.consents.clock.now(),
                             granter=caller, grantee=grantee, categories=categories,
                             failed=result.failed_categories)
        return result
