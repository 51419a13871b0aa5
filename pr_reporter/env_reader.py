"""
Environment variable reading utilities for the PR Reporter.

Every reader takes a primary key and any number of fallback keys, so the same
setting can come from ``PR_REPORTER_*`` variables or from the ``INPUT_*``
variables GitHub Actions derives from action inputs.
"""

import os
from typing import Type
from enum import Enum


def get_env_str(key: str, default: str = "", *fallback_keys: str) -> str:
    """Get string value from environment with fallback keys.

    Args:
        key: Primary environment variable key
        default: Default value if not found
        *fallback_keys: Additional keys to try if primary is not found

    Returns:
        The environment variable value or default
    """
    for candidate in (key,) + fallback_keys:
        value = os.environ.get(candidate, "").strip()
        if value:
            return value
    return default


def get_env_int(key: str, default: int, *fallback_keys: str) -> int:
    """Get integer value from environment with fallback keys.

    Args:
        key: Primary environment variable key
        default: Default value if not found or conversion fails
        *fallback_keys: Additional keys to try if primary is not found

    Returns:
        The environment variable value as integer or default
    """
    value = get_env_str(key, "", *fallback_keys)
    if value:
        try:
            return int(value)
        except ValueError:
            pass
    return default


def get_env_bool(key: str, default: bool, *fallback_keys: str) -> bool:
    """Get boolean value from environment with fallback keys.

    Recognizes 'true', 'yes', '1' as True (case-insensitive).
    """
    value = get_env_str(key, "", *fallback_keys)
    if value:
        return value.lower() in ('true', 'yes', '1')
    return default


def get_env_enum(key: str, enum_class: Type[Enum], default: Enum, *fallback_keys: str) -> Enum:
    """Get enum value from environment with fallback keys.

    The value is matched as given, then lowercased, then uppercased, and
    hyphens are accepted in place of underscores (``fallback-to-comment``).

    Args:
        key: Primary environment variable key
        enum_class: The enum class to convert to
        default: Default enum value if not found or conversion fails
        *fallback_keys: Additional keys to try if primary is not found

    Returns:
        The environment variable value as enum or default
    """
    value = get_env_str(key, "", *fallback_keys)
    if value:
        normalized = value.replace("-", "_")
        for candidate in (value, normalized.lower(), normalized.upper()):
            try:
                return enum_class(candidate)
            except ValueError:
                continue
    return default
