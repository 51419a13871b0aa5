"""
Validation utilities for the PR Reporter.

This module provides reusable validation functions used by the configuration
dataclasses.
"""

from urllib.parse import urlparse

from .comment_marker import is_valid_identifier


def validate_required_string(value: str, field_name: str) -> None:
    """Validate that a required string field is not empty.

    Args:
        value: The string value to validate
        field_name: Name of the field for error messages

    Raises:
        ValueError: If the value is empty or not a string
    """
    if not value or not isinstance(value, str):
        raise ValueError(f"{field_name} is required")


def validate_positive_int(value: int, field_name: str) -> None:
    """Validate that an integer value is positive.

    Raises:
        ValueError: If the value is not positive
    """
    if value <= 0:
        raise ValueError(f"{field_name} must be positive")


def validate_range(value: float, min_val: float, max_val: float, field_name: str) -> None:
    """Validate that a value is within a specified range.

    Args:
        value: The value to validate
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive)
        field_name: Name of the field for error messages

    Raises:
        ValueError: If the value is outside the range
    """
    if not min_val <= value <= max_val:
        raise ValueError(f"{field_name} must be between {min_val} and {max_val}")


def validate_github_token_format(token: str) -> bool:
    """Validate GitHub token format.

    Accepts classic 40 character tokens and the prefixed token kinds
    (personal, OAuth, user-to-server, server-to-server, fine-grained).

    Returns:
        True if the token format is valid, False otherwise
    """
    if not token or not isinstance(token, str):
        return False
    return len(token) >= 4 and (
        len(token) == 40 or
        token.startswith(('ghp_', 'ghs_', 'gho_', 'ghu_', 'github_pat_'))
    )


def validate_identifier(identifier: str, field_name: str = "identifier") -> None:
    """Validate that an identifier can be embedded in a comment marker.

    Raises:
        ValueError: If the identifier is empty or contains ':', '>' or whitespace
    """
    validate_required_string(identifier, field_name)
    if not is_valid_identifier(identifier):
        raise ValueError(f"{field_name} must not contain ':', '>' or whitespace: {identifier!r}")


def validate_url(url: str, field_name: str) -> None:
    """Validate that a value is an absolute http(s) URL.

    Raises:
        ValueError: If the URL has no http(s) scheme or no host
    """
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"{field_name} must be an absolute http(s) URL, got {url!r}")

