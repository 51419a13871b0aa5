"""
Comment markers for the PR Reporter.

Every comment this tool creates starts with an invisible HTML comment line::

    <!-- pr-reporter:<identifier>[:<hash>] -->

The identifier ties the comment to one logical tool/run purpose, and the
optional hash is a short content fingerprint used to detect changes between
runs. Everything about a previous run that the reporter needs is recovered
from these markers; nothing else is persisted.
"""

import hashlib
import re
from typing import List, NamedTuple, Optional


NAMESPACE = "pr-reporter"
HASH_LENGTH = 8
STICKY_SENTINEL = "<!-- sticky -->"
SECTION_SEPARATOR = "\n\n---\n\n"

_IDENTIFIER_RE = re.compile(r"^[^\s:>]+$")
_MARKER_RE = re.compile(rf"<!-- {re.escape(NAMESPACE)}:([^\s:>]+)(?::([^\s>]+))? -->")
_LEADING_MARKER_RE = re.compile(rf"\A<!-- {re.escape(NAMESPACE)}:[^\s:>]+(?::[^\s>]+)? -->(?:\n|\Z)")


class Marker(NamedTuple):
    """A parsed marker."""
    identifier: str
    content_hash: Optional[str] = None


def is_valid_identifier(identifier: str) -> bool:
    """Whether an identifier can be embedded in a marker unambiguously."""
    return isinstance(identifier, str) and bool(_IDENTIFIER_RE.match(identifier))


def validate_identifier(identifier: str) -> None:
    """Raise ValueError if an identifier cannot be embedded unambiguously."""
    if not is_valid_identifier(identifier):
        raise ValueError(
            f"Invalid marker identifier {identifier!r}: must be non-empty and contain no ':', '>' or whitespace"
        )


def generate(identifier: str, content_hash: Optional[str] = None) -> str:
    """Generate the marker line for an identifier and optional hash."""
    validate_identifier(identifier)
    if content_hash:
        return f"<!-- {NAMESPACE}:{identifier}:{content_hash} -->"
    return f"<!-- {NAMESPACE}:{identifier} -->"


def parse(body: Optional[str]) -> Optional[Marker]:
    """Parse the first marker found in a comment body.

    Returns:
        The marker, or None when the body carries no well-formed marker
    """
    if not body:
        return None
    match = _MARKER_RE.search(body)
    if not match:
        return None
    return Marker(identifier=match.group(1), content_hash=match.group(2))


def contains(identifier: str, body: Optional[str]) -> bool:
    """Check whether a body carries a marker for exactly this identifier."""
    marker = parse(body)
    return marker is not None and marker.identifier == identifier


def content_hash(content: str) -> str:
    """Fingerprint content for change detection.

    SHA-1 over the UTF-8 bytes, truncated to a fixed width. The value only has
    to be stable across processes; it is not used for anything security related.
    """
    return hashlib.sha1((content or "").encode("utf-8")).hexdigest()[:HASH_LENGTH]


def add_marker(body: str, identifier: str, include_hash: bool = True) -> str:
    """Prepend a marker line to a body."""
    marker = generate(identifier, content_hash(body) if include_hash else None)
    return f"{marker}\n{body}"


def remove_marker(body: Optional[str]) -> str:
    """Strip the single leading marker line (and its newline) from a body."""
    if not body:
        return ""
    return _LEADING_MARKER_RE.sub("", body, count=1)


def is_sticky(body: Optional[str]) -> bool:
    return bool(body) and STICKY_SENTINEL in body


def split_sections(body: Optional[str]) -> List[str]:
    """Split a marker-stripped body into its merged sections."""
    return remove_marker(body).split(SECTION_SEPARATOR)
