"""
Environment variable readers for the GitLab AI Code Reviewer.

Every reader takes a primary key, a default and any number of fallback keys
(e.g. the GitLab CI predefined variables) that are tried in order.
"""

import os
from typing import TypeVar, Optional, List
from enum import Enum


E = TypeVar('E', bound=Enum)


def _first_value(keys) -> Optional[str]:
    for key in keys:
        value = os.environ.get(key, "")
        if value:
            return value
    return None


def get_env_str(key: str, default: str = "", *fallback_keys: str) -> str:
    """Get a string value from the environment.

    Args:
        key: Primary environment variable key
        default: Value returned when no key is set
        *fallback_keys: Keys tried when the primary one is unset or empty

    Returns:
        The first non-empty value found, or ``default``
    """
    value = _first_value((key,) + fallback_keys)
    return value if value is not None else default


def get_env_int(key: str, default: int, *fallback_keys: str) -> int:
    """Get an integer value, falling back to ``default`` on bad input."""
    value = get_env_str(key, "", *fallback_keys)
    if value:
        try:
            return int(value.strip())
        except ValueError:
            pass
    return default


def get_env_float(key: str, default: float, *fallback_keys: str) -> float:
    """Get a float value, falling back to ``default`` on bad input."""
    value = get_env_str(key, "", *fallback_keys)
    if value:
        try:
            return float(value.strip())
        except ValueError:
            pass
    return default


def get_env_bool(key: str, default: bool, *fallback_keys: str) -> bool:
    """Get a boolean value.

    'true', 'yes', 'on' and '1' (any case) are True; any other non-empty value
    is False.
    """
    value = get_env_str(key, "", *fallback_keys)
    if value:
        return value.strip().lower() in ('true', 'yes', 'on', '1')
    return default


def get_env_list(key: str, separator: str = ",", *fallback_keys: str) -> List[str]:
    """Get a list of non-empty, stripped strings split on ``separator``."""
    value = get_env_str(key, "", *fallback_keys)
    if value:
        return [item.strip() for item in value.split(separator) if item.strip()]
    return []


def get_env_enum(key: str, enum_class: type, default: E, *fallback_keys: str) -> E:
    """Get an enum member by value or by name, case-insensitively.

    Args:
        key: Primary environment variable key
        enum_class: Enum class to convert to
        default: Member returned when unset or unrecognized
        *fallback_keys: Additional keys to try

    Returns:
        The matching enum member or ``default``
    """
    value = get_env_str(key, "", *fallback_keys).strip()
    if not value:
        return default

    for candidate in (value, value.lower(), value.upper()):
        try:
            return enum_class(candidate)
        except ValueError:
            continue

    member = enum_class.__members__.get(value.upper())
    return member if member is not None else default
