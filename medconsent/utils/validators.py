"""
Input Validators for the medconsent engine

Provides validation utilities for principals, category labels,
durations and bounded free-text fields.
"""

import logging
from typing import Any, List

from ..constants import Limits
from ..exceptions import ValidationError, InvalidCategoryError, InvalidDurationError

logger = logging.getLogger(__name__)


def utf8_length(text: str) -> int:
    """Length of text in UTF-8 bytes, the unit of every string bound"""
    return len(text.encode("utf-8", errors="surrogatepass"))


def validate_principal(
    principal: Any,
    field_name: str = "principal",
    max_length: int = Limits.MAX_PRINCIPAL_LENGTH
) -> str:
    """
    Validate an opaque principal identifier.

    Principals are compared byte-for-byte, so no normalisation is applied.

    Raises:
        ValidationError: If the identifier is missing, not a string or too long
    """
    if principal is None or (isinstance(principal, str) and not principal.strip()):
        raise ValidationError(f"{field_name} is required", field=field_name)

    if not isinstance(principal, str):
        raise ValidationError(f"{field_name} must be a string", field=field_name)

    if utf8_length(principal) > max_length:
        raise ValidationError(
            f"{field_name} exceeds maximum length",
            field=field_name,
            details={"max_length": max_length}
        )

    return principal


def validate_category_label(
    category: Any,
    max_length: int = Limits.MAX_CATEGORY_LENGTH
) -> str:
    """
    Validate the shape of a category label (not its membership).

    Raises:
        InvalidCategoryError: If the label is not a string of 1..max_length bytes
    """
    if not isinstance(category, str):
        raise InvalidCategoryError(str(category), reason="category must be a string")

    if utf8_length(category) < Limits.MIN_CATEGORY_LENGTH:
        raise InvalidCategoryError(category, reason="category is empty")

    if utf8_length(category) > max_length:
        raise InvalidCategoryError(
            category, reason=f"category exceeds {max_length} bytes"
        )

    return category


def validate_duration(
    duration: Any,
    field_name: str = "duration",
    max_duration: int = Limits.MAX_DURATION
) -> int:
    """
    Validate a duration or extension in logical clock units.

    Raises:
        ValidationError: If the value is not an integer
        InvalidDurationError: If the value is outside 1..max_duration
    """
    if isinstance(duration, bool) or not isinstance(duration, int):
        raise ValidationError(f"{field_name} must be an integer", field=field_name)

    if duration <= 0 or duration > max_duration:
        raise InvalidDurationError(duration, max_duration)

    return duration


def validate_bounded_text(
    text: Any,
    max_length: int,
    field_name: str = "text",
    allow_empty: bool = True
) -> str:
    """
    Validate a bounded free-text field such as a description.

    Raises:
        ValidationError: If the text is missing or longer than max_length
    """
    if text is None:
        text = ""

    if not isinstance(text, str):
        raise ValidationError(f"{field_name} must be a string", field=field_name)

    if not allow_empty and not text.strip():
        raise ValidationError(f"{field_name} is required", field=field_name)

    length = utf8_length(text)
    if length > max_length:
        raise ValidationError(
            f"{field_name} exceeds maximum length of {max_length} bytes",
            field=field_name,
            details={"length": length, "max_length": max_length}
        )

    return text


def validate_category_list(
    categories: Any,
    max_items: int,
    field_name: str = "categories"
) -> List[str]:
    """
    Validate a bounded list of category labels.

    Raises:
        ValidationError: If the value is not a list or exceeds max_items
    """
    if not isinstance(categories, (list, tuple)):
        raise ValidationError(f"{field_name} must be a list", field=field_name)

    if len(categories) > max_items:
        raise ValidationError(
            f"{field_name} cannot hold more than {max_items} entries",
            field=field_name,
            details={"count": len(categories), "max_items": max_items}
        )

    return list(categories)


def sanitize_details(details: str, max_length: int = Limits.MAX_DETAILS_LENGTH) -> str:
    """
    Sanitize history details for storage.

    Control characters are dropped and the text is cut to at most
    max_length UTF-8 bytes, never inside a multi-byte character.
    """
    if not details:
        return ""

    details = details.replace("\n", " ").replace("\r", " ")
    details = ''.join(c for c in details if c.isprintable() or c == ' ')

    encoded = details.encode("utf-8")
    if len(encoded) > max_length:
        logger.debug("Truncating history details from %d to %d bytes", len(encoded), max_length)
        details = encoded[:max_length].decode("utf-8", errors="ignore")

    return details
