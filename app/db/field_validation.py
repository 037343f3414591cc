"""Field name validation and sanitization for safe queries."""

import logging
import re

from .metadata import _get_allowed_fields

logger = logging.getLogger(__name__)

_FIELD_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)*$")


def validate_field_name(field: str) -> bool:
    """
    Validate that a field name is safe to use in queries.

    Uses the registered descriptors + pattern-based fallback. Dotted paths
    (`data.itemName`) address keys inside object fields.

    Args:
        field: Field name or dotted path to validate

    Returns:
        True if field is safe, False otherwise

    """
    if field in _get_allowed_fields():
        return True

    if _FIELD_PATTERN.match(field):
        logger.debug("Field '%s' is not declared, but matches safe pattern", field)
        return True

    logger.error("Unsafe field name detected: %s", field)
    return False


def sanitize_field_name(field: str) -> str:
    """
    Sanitize field name for use in queries.

    Args:
        field: Field name to sanitize

    Returns:
        Sanitized field name

    """
    if not validate_field_name(field):
        raise ValueError(f"Unsafe field name: {field}")

    # Escape backticks if used
    return field.replace("`", "``")
