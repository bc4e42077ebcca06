"""
Constants for the medconsent engine

Centralized default categories, capacity limits, history actions
and the numeric error codes of the consent contract.
"""

from typing import Final, Tuple

# =============================================================================
# SERVICE IDENTIFICATION
# =============================================================================

SERVICE_NAME: Final[str] = "medconsent"
SERVICE_VERSION: Final[str] = "0.1.0"

# =============================================================================
# CATEGORIES
# =============================================================================

class DefaultCategories:
    """Record categories seeded by the one-time registry bootstrap"""
    MEDICAL_HISTORY: Final[str] = "medical-history"
    VACCINATIONS: Final[str] = "vaccinations"
    ALLERGIES: Final[str] = "allergies"
    MEDICATIONS: Final[str] = "medications"
    LAB_RESULTS: Final[str] = "lab-results"
    MENTAL_HEALTH: Final[str] = "mental-health"
    IMAGING: Final[str] = "imaging"
    GENETICS: Final[str] = "genetics"

    ALL: Final[Tuple[str, ...]] = (
        MEDICAL_HISTORY, VACCINATIONS, ALLERGIES, MEDICATIONS,
        LAB_RESULTS, MENTAL_HEALTH, IMAGING, GENETICS,
    )


# =============================================================================
# CAPACITY LIMITS
# =============================================================================

class Limits:
    """Fixed capacities and string bounds; string bounds are UTF-8 bytes"""
    MAX_HISTORY_ENTRIES: Final[int] = 50
    MAX_DELEGATES: Final[int] = 10
    MAX_TEMPLATE_CATEGORIES: Final[int] = 10
    MAX_BATCH_CATEGORIES: Final[int] = 10

    MIN_CATEGORY_LENGTH: Final[int] = 1
    MAX_CATEGORY_LENGTH: Final[int] = 32
    MAX_DETAILS_LENGTH: Final[int] = 128
    MAX_DESCRIPTION_LENGTH: Final[int] = 256
    MAX_TEMPLATE_NAME_LENGTH: Final[int] = 64
    MAX_PRINCIPAL_LENGTH: Final[int] = 128

    # Logical times are stored as signed 64-bit integers
    MAX_DURATION: Final[int] = 2**32 - 1
    MAX_LOGICAL_TIME: Final[int] = 2**63 - 1


# =============================================================================
# ERROR CODES
# =============================================================================

class ErrorCodes:
    """Numeric codes returned by the consent contract"""
    NOT_AUTHORIZED: Final[int] = 100
    CONSENT_EXPIRED_OR_INACTIVE: Final[int] = 101
    INVALID_CATEGORY: Final[int] = 102
    CONFLICT: Final[int] = 103
    NOT_FOUND: Final[int] = 104
    NOT_DELEGATED: Final[int] = 105
    TEMPLATE_NOT_FOUND: Final[int] = 106
    INVALID_DURATION: Final[int] = 107
    # 108 was reserved for a history limit error that is never raised;
    # history eviction is silent.
    CAPACITY_EXCEEDED: Final[int] = 109
    INVALID_TEMPLATE: Final[int] = 110


# =============================================================================
# HISTORY
# =============================================================================

DELEGATE_NOTE_FORMAT: Final[str] = "(by delegate {delegate})"
HISTORY_GENESIS: Final[bytes] = b"medconsent-history-genesis"
