"""
Input validation functions.
"""

import re
from typing import Tuple


def validate_name(name: str) -> None:
    """
    Validate a volume name.

    Volume names double as GCE disk names, so they follow RFC 1035: lowercase
    letters, digits and hyphens, starting with a letter, at most 63 characters.

    Args:
        name: Name to validate

    Raises:
        ValueError: If name is invalid
    """
    if not name:
        raise ValueError("Name cannot be empty")

    if len(name) > 63:
        raise ValueError("Name must be between 1 and 63 characters")

    if not re.match(r'^[a-z]([-a-z0-9]*[a-z0-9])?$', name):
        raise ValueError(
            "Name must start with a lowercase letter and contain only lowercase letters, digits, or hyphens"
        )


def parse_option(option: str) -> Tuple[str, str]:
    """
    Parse a key=value option.

    Args:
        option: Option string (e.g., "sizeGb=20")

    Returns:
        Tuple of (key, value)

    Raises:
        ValueError: If the option has no '='
    """
    key, sep, value = option.partition("=")
    if not sep or not key.strip():
        raise ValueError(f"Option must be in format key=value: {option}")
    return key.strip(), value.strip()
