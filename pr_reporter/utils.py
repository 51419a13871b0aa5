"""
Shared utility functions for the PR Reporter.

This module provides small helpers used across multiple modules.
"""

import re
from typing import List, Optional, Pattern, Sequence, TypeVar


T = TypeVar('T')

REDACTED = "[REDACTED]"

GITHUB_TOKEN_PATTERNS: List[Pattern] = [
    re.compile(r"gh[pousr]_[A-Za-z0-9]{16,}"),
    re.compile(r"github_pat_[A-Za-z0-9_]{22,}"),
]


def chunked(items: Sequence[T], size: int) -> List[List[T]]:
    """Split a sequence into consecutive lists of at most ``size`` items.

    Args:
        items: The items to split
        size: Maximum chunk length, must be positive

    Returns:
        List of chunks, empty when there are no items
    """
    if size <= 0:
        raise ValueError("Chunk size must be positive")
    items = list(items)
    return [items[i:i + size] for i in range(0, len(items), size)]


def redact_secrets(text: str, secrets: Optional[Sequence[str]] = None) -> str:
    """Replace known secrets and anything that looks like a GitHub token.

    Args:
        text: Text that may contain secrets
        secrets: Literal values to redact in addition to the token patterns

    Returns:
        The text with every match replaced by ``[REDACTED]``
    """
    if not text:
        return text
    for secret in secrets or ():
        if secret:
            text = text.replace(secret, REDACTED)
    for pattern in GITHUB_TOKEN_PATTERNS:
        text = pattern.sub(REDACTED, text)
    return text

