"""
Consent templates for medconsent
Named, write-once bundles of categories applied as bulk grants
"""

from typing import List, Optional
import structlog

from .clock import LogicalClock
from .models import BatchItemResult, BatchResult, ConsentTemplate
from .storage import ConsentStateStorage
from .store import ConsentStore
from ..audit.events import ConsentEventBus, ConsentEventType
from ..config import ConsentConfig, get_consent_config
from ..constants import Limits
from ..exceptions import (
    ConflictError,
    ConsentEngineError,
    InvalidCategoryError,
    InvalidDurationError,
    InvalidTemplateError,
    Subject,
    TemplateNotFoundError,
    ValidationError,
)
from ..utils.validators import validate_bounded_text

logger = structlog.get_logger(__name__)


def item_result(category: str, error: Optional[ConsentEngineError] = None) -> BatchItemResult:
    """Per-category outcome for batch and template operations"""
    if error is None:
        return BatchItemResult(category=category, ok=True)
    return BatchItemResult(
        category=category,
        ok=False,
        error=error.kind.value,
        code=error.code,
        message=error.message,
    )


class TemplateStore:
    """Create, look up and apply consent templates"""

    def __init__(self, storage: ConsentStateStorage, consents: ConsentStore,
                 clock: LogicalClock, config: Optional[ConsentConfig] = None,
                 events: Optional[ConsentEventBus] = None):
        self.storage = storage
        self.consents = consents
        self.clock = clock
        self.config = config or get_consent_config()
        self.events = events

    def create(self, name: str, categories: List[str], duration: int,
               description: str = "", creator: Optional[str] = None) -> ConsentTemplate:
        """Create a template; templates cannot be edited or deleted afterwards"""
        validate_bounded_text(name, self.config.max_template_name_length, "name", allow_empty=False)
        description = validate_bounded_text(description, self.config.max_description_length,
                                            "description")
        if not isinstance(categories, (list, tuple)):
            raise ValidationError("categories must be a list", field="categories")

        if self.storage.get_template(name) is not None:
            raise ConflictError(Subject.TEMPLATE, name)
        if isinstance(duration, bool) or not isinstance(duration, int):
            raise ValidationError("duration must be an integer", field="duration")
        if duration <= 0 or duration > Limits.MAX_DURATION:
            raise InvalidDurationError(duration)
        if len(categories) > self.config.max_template_categories:
            raise InvalidTemplateError(name, len(categories), self.config.max_template_categories)
        for category in categories:
            if not self.consents.categories.is_valid(category):
                raise InvalidCategoryError(category)

        template = ConsentTemplate(
            name=name,
            categories=list(categories),
            duration=duration,
            description=description,
            created_by=creator,
            created_at=self.clock.now(),
        )
        self.storage.put_template(template)

        logger.info("Created consent template", template=name, categories=template.categories,
                    duration=duration)
        if self.events:
            self.events.emit(ConsentEventType.TEMPLATE_CREATED, self.clock.now(),
                             template=name, categories=template.categories, creator=creator)
        return template

    def get(self, name: str) -> Optional[ConsentTemplate]:
        return self.storage.get_template(name)

    def apply(self, caller: str, grantee: str, name: str) -> BatchResult:
        """
        Grant every category of a template from caller to grantee, in order.

        Individual grant failures are recorded in the result but never fail
        the call; inspect ``all_succeeded`` or ``results``.
        """
        template = self.storage.get_template(name)
        if template is None:
            raise TemplateNotFoundError(name)

        result = BatchResult()
        for category in template.categories:
            try:
                self.consents.grant(caller, caller, grantee, category, template.duration,
                                    notes=template.description)
                result.results.append(item_result(category))
            except ConsentEngineError as e:
                logger.warning("Template grant failed", template=name, category=category,
                               caller=caller, grantee=grantee, error=e.kind.value)
                result.results.append(item_result(category, e))

        logger.info("Applied consent template", template=name, caller=caller, grantee=grantee,
                    all_succeeded=result.all_succeeded)
        if self.events:
            self.events.emit(ConsentEventType.TEMPLATE_APPLIED, self.clock.now(),
                             template=name, granter=caller, grantee=grantee,
                             failed=result.failed_categories)
        return result
