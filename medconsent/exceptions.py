"""
Custom Exceptions for the medconsent engine

Provides a unified exception hierarchy for consent transitions,
delegation, category and template registries, audit and storage.
"""

from enum import Enum
from typing import Optional, Dict, Any

from .constants import ErrorCodes, Limits


class ErrorKind(str, Enum):
    """Symbolic error kinds surfaced to callers"""
    NOT_AUTHORIZED = "not_authorized"
    NOT_DELEGATED = "not_delegated"
    INVALID_CATEGORY = "invalid_category"
    INVALID_DURATION = "invalid_duration"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    CONSENT_EXPIRED_OR_INACTIVE = "consent_expired_or_inactive"
    TEMPLATE_NOT_FOUND = "template_not_found"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    INVALID_TEMPLATE = "invalid_template"
    VALIDATION = "validation_error"
    AUDIT_FAILED = "audit_failed"
    STORAGE = "storage_error"


class Subject(str, Enum):
    """What a conflict or lookup failure refers to"""
    CONSENT = "consent"
    CATEGORY = "category"
    TEMPLATE = "template"
    DELEGATE = "delegate"


class ConsentEngineError(Exception):
    """
    Base exception for all consent engine errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        details: Additional context about the error
    """

    kind: ErrorKind = ErrorKind.VALIDATION
    code: Optional[int] = None

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code or self.kind.value.upper()
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses"""
        result: Dict[str, Any] = {
            "error": self.kind.value,
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.code is not None:
            result["code"] = self.code
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# AUTHORIZATION ERRORS
# =============================================================================

class NotAuthorizedError(ConsentEngineError):
    """Raised when the caller is neither the granter nor one of its delegates"""

    kind = ErrorKind.NOT_AUTHORIZED
    code = ErrorCodes.NOT_AUTHORIZED

    def __init__(self, caller: str, granter: str):
        super().__init__(
            message=f"{caller} is not authorized to act for {granter}",
            details={"caller": caller, "granter": granter}
        )


class NotDelegatedError(ConsentEngineError):
    """Raised when a delegate entry point is used by a non-delegate"""

    kind = ErrorKind.NOT_DELEGATED
    code = ErrorCodes.NOT_DELEGATED

    def __init__(self, caller: str, granter: str):
        super().__init__(
            message=f"{caller} is not a delegate of {granter}",
            details={"caller": caller, "granter": granter}
        )


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InvalidCategoryError(ConsentEngineError):
    """Raised when a category is not in the valid set or is malformed"""

    kind = ErrorKind.INVALID_CATEGORY
    code = ErrorCodes.INVALID_CATEGORY

    def __init__(self, category: str, reason: Optional[str] = None):
        details: Dict[str, Any] = {"category": category}
        if reason:
            details["reason"] = reason
        super().__init__(
            message=f"Invalid category: {category}",
            details=details
        )


class InvalidDurationError(ConsentEngineError):
    """Raised when a duration or extension is not in 1..MAX_DURATION"""

    kind = ErrorKind.INVALID_DURATION
    code = ErrorCodes.INVALID_DURATION

    def __init__(self, duration: int, limit: int = Limits.MAX_DURATION):
        super().__init__(
            message=f"Duration must be between 1 and {limit}, got {duration}",
            details={"duration": duration, "limit": limit}
        )


class InvalidTemplateError(ConsentEngineError):
    """Raised when a template lists more categories than allowed"""

    kind = ErrorKind.INVALID_TEMPLATE
    code = ErrorCodes.INVALID_TEMPLATE

    def __init__(self, name: str, category_count: int, limit: int):
        super().__init__(
            message=f"Template {name} lists {category_count} categories, limit is {limit}",
            details={"template": name, "category_count": category_count, "limit": limit}
        )


class ValidationError(ConsentEngineError):
    """Raised when input validation fails"""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details=details)


# =============================================================================
# STATE ERRORS
# =============================================================================

class ConflictError(ConsentEngineError):
    """Raised on a duplicate consent, category, template or delegate"""

    kind = ErrorKind.CONFLICT
    code = ErrorCodes.CONFLICT

    def __init__(self, subject: Subject, identifier: str):
        self.subject = subject
        super().__init__(
            message=f"{subject.value.capitalize()} already exists: {identifier}",
            details={"subject": subject.value, "id": identifier}
        )


class NotFoundError(ConsentEngineError):
    """Raised when a consent or delegation does not exist"""

    kind = ErrorKind.NOT_FOUND
    code = ErrorCodes.NOT_FOUND

    def __init__(self, subject: Subject, identifier: str):
        self.subject = subject
        super().__init__(
            message=f"{subject.value.capitalize()} not found: {identifier}",
            details={"subject": subject.value, "id": identifier}
        )


class ConsentExpiredOrInactiveError(ConsentEngineError):
    """Raised when a consent was revoked or its expiry has passed"""

    kind = ErrorKind.CONSENT_EXPIRED_OR_INACTIVE
    code = ErrorCodes.CONSENT_EXPIRED_OR_INACTIVE

    def __init__(self, identifier: str, expiry: int, active: bool, now: int):
        super().__init__(
            message=f"Consent expired or inactive: {identifier}",
            details={"id": identifier, "expiry": expiry, "active": active, "now": now}
        )


class TemplateNotFoundError(ConsentEngineError):
    """Raised when applying a template that was never created"""

    kind = ErrorKind.TEMPLATE_NOT_FOUND
    code = ErrorCodes.TEMPLATE_NOT_FOUND

    def __init__(self, name: str):
        super().__init__(
            message=f"Template not found: {name}",
            details={"template": name}
        )


class CapacityExceededError(ConsentEngineError):
    """Raised when a granter's delegate list is full"""

    kind = ErrorKind.CAPACITY_EXCEEDED
    code = ErrorCodes.CAPACITY_EXCEEDED

    def __init__(self, owner: str, limit: int):
        super().__init__(
            message=f"Delegate limit of {limit} reached for {owner}",
            details={"owner": owner, "limit": limit}
        )


# =============================================================================
# COLLABORATOR ERRORS
# =============================================================================

class AuditLogError(ConsentEngineError):
    """Raised when the audit collaborator rejects or fails an access record"""

    kind = ErrorKind.AUDIT_FAILED

    def __init__(
        self,
        message: str = "Failed to write audit log",
        reason: Optional[str] = None
    ):
        details: Dict[str, Any] = {}
        if reason:
            details["reason"] = reason
        super().__init__(message, details=details)


class StorageError(ConsentEngineError):
    """Raised when the storage backend fails"""

    kind = ErrorKind.STORAGE

    def __init__(self, operation: str, reason: Optional[str] = None):
        details: Dict[str, Any] = {"operation": operation}
        if reason:
            details["reason"] = reason
        super().__init__(f"Storage operation failed: {operation}", details=details)
