"""
Utility functions for medconsent
ID generation, validation, and helper functions
"""

from .ids import generate_event_id, generate_audit_id
from .validators import (
    utf8_length,
    validate_principal,
    validate_category_label,
    validate_duration,
    validate_bounded_text,
    validate_category_list,
    sanitize_details,
)

__all__ = [
    # ID generation
    "generate_event_id",
    "generate_audit_id",
    # Validators
    "utf8_length",
    "validate_principal",
    "validate_category_label",
    "validate_duration",
    "validate_bounded_text",
    "validate_category_list",
    "sanitize_details",
]
