"""
Diff position mapping for the PR Reporter.

GitHub review comments are anchored with a ``position``: a 1-based offset into
the ``patch`` text of one file as returned by the pull request files endpoint.
This module parses those patches and maps new-file line numbers onto
positions, and resolves feedback paths against the changed-file list.
"""

import logging
import posixpath
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional

from .models import FeedbackItem, PullRequestFile


logger = logging.getLogger(__name__)

HUNK_HEADER_RE = re.compile(r"@@\s*-(\d+)(?:,(\d+))?\s*\+(\d+)(?:,(\d+))?\s*@@")


class LineKind(Enum):
    """Kind of a physical line inside a hunk."""
    HEADER = "header"
    CONTEXT = "context"
    ADDITION = "addition"
    DELETION = "deletion"
    NO_NEWLINE = "no_newline"


class DiffSide(Enum):
    """Side of the diff a review comment is attached to."""
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class HunkHeader(NamedTuple):
    """Numbers declared by a ``@@ -a,b +c,d @@`` header."""
    old_start: int
    old_count: int
    new_start: int
    new_count: int


@dataclass
class DiffLine:
    """One physical line of a hunk together with its computed numbering."""
    kind: LineKind
    content: str
    position: int
    old_line: Optional[int] = None
    new_line: Optional[int] = None

    @property
    def is_commentable(self) -> bool:
        return self.kind in (LineKind.ADDITION, LineKind.CONTEXT)


@dataclass
class Hunk:
    """A parsed hunk; ``lines`` starts with the header line itself."""
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    start_position: int
    section: str = ""
    lines: List[DiffLine] = field(default_factory=list)

    @property
    def new_end(self) -> int:
        return self.new_start + self.new_count - 1


class LineMapping(NamedTuple):
    """Result of mapping a file line onto the diff."""
    position: int
    side: DiffSide


def parse_hunk_header(line: str) -> Optional[HunkHeader]:
    """Parse a hunk header line.

    Missing counts default to 1, as in ``@@ -5 +10 @@``.

    Returns:
        The parsed header, or None if the line is not a valid header
    """
    if not line:
        return None
    match = HUNK_HEADER_RE.search(line)
    if not match:
        return None
    old_start, old_count, new_start, new_count = match.groups()
    return HunkHeader(
        old_start=int(old_start),
        old_count=int(old_count) if old_count is not None else 1,
        new_start=int(new_start),
        new_count=int(new_count) if new_count is not None else 1,
    )


def _patch_lines(patch: str) -> List[str]:
    lines = patch.split("\n")
    # A trailing newline terminates the last line; it is not an extra blank line.
    if lines and lines[-1] == "" and patch.endswith("\n"):
        lines.pop()
    return lines


def parse_hunks(patch: Optional[str]) -> List[Hunk]:
    """Parse a unified diff patch into hunks.

    Positions count every physical line of the patch starting at 1, header
    lines included, and are never reset between hunks. A header that cannot
    be parsed is skipped together with the lines that follow it until the
    next valid header.

    Args:
        patch: The ``patch`` text of a single file (may be None for binary files)

    Returns:
        List of parsed hunks, empty when nothing could be parsed
    """
    if not patch or not isinstance(patch, str):
        return []

    hunks: List[Hunk] = []
    current: Optional[Hunk] = None
    old_line = new_line = 0

    for position, raw in enumerate(_patch_lines(patch), start=1):
        if raw.startswith("@@"):
            header = parse_hunk_header(raw)
            if header is None:
                logger.debug(f"Skipping unparseable hunk header at position {position}: {raw[:80]}")
                current = None
                continue
            section = HUNK_HEADER_RE.sub("", raw, count=1).strip()
            current = Hunk(
                old_start=header.old_start,
                old_count=header.old_count,
                new_start=header.new_start,
                new_count=header.new_count,
                start_position=position,
                section=section,
            )
            current.lines.append(DiffLine(LineKind.HEADER, raw, position))
            hunks.append(current)
            old_line, new_line = header.old_start, header.new_start
            continue

        if current is None:
            # Outside any hunk (file headers, garbage before the first @@)
            continue

        if raw.startswith("+"):
            current.lines.append(DiffLine(LineKind.ADDITION, raw, position, new_line=new_line))
            new_line += 1
        elif raw.startswith("-"):
            current.lines.append(DiffLine(LineKind.DELETION, raw, position, old_line=old_line))
            old_line += 1
        elif raw.startswith("\\"):
            current.lines.append(DiffLine(LineKind.NO_NEWLINE, raw, position))
        else:
            # ' ' prefix, an empty line, or anything unexpected counts as context
            current.lines.append(
                DiffLine(LineKind.CONTEXT, raw, position, old_line=old_line, new_line=new_line)
            )
            old_line += 1
            new_line += 1

    return hunks


def position_for_line(line: int, patch: Optional[str]) -> Optional[int]:
    """Map a new-file line number to its diff position.

    Only addition and context lines can carry a review comment, so deleted
    lines and lines outside every hunk map to None.
    """
    mapping = map_line(line, patch)
    return mapping.position if mapping else None


def map_line(line: int, patch: Optional[str], old_side: bool = False) -> Optional[LineMapping]:
    """Map a line number to a diff position and side.

    Args:
        line: Line number in the new file, or in the old file when ``old_side``
        patch: The file patch
        old_side: Look the line up on the LEFT (old file) side instead

    Returns:
        The mapping of the first matching line, or None
    """
    for hunk in parse_hunks(patch):
        for diff_line in hunk.lines:
            if old_side:
                if diff_line.old_line == line and diff_line.kind in (LineKind.DELETION, LineKind.CONTEXT):
                    return LineMapping(diff_line.position, DiffSide.LEFT)
            elif diff_line.new_line == line and diff_line.is_commentable:
                return LineMapping(diff_line.position, DiffSide.RIGHT)
    return None


def is_line_in_diff(line: int, patch: Optional[str]) -> bool:
    """Check whether a new-file line falls inside any hunk's declared range."""
    return any(hunk.new_start <= line <= hunk.new_end for hunk in parse_hunks(patch))


def resolved_path(item: FeedbackItem, files: Iterable[PullRequestFile]) -> Optional[str]:
    """Resolve the path of a feedback item against the changed files.

    Resolution order:
    1. Exact filename match
    2. A renamed file whose previous filename matches (old path -> new path)
    3. Same final path component, for tools reporting a different path prefix

    Returns:
        The filename as GitHub knows it, or None when no file matches
    """
    files = list(files)
    if any(f.filename == item.path for f in files):
        return item.path

    for f in files:
        if f.previous_filename and f.previous_filename == item.path:
            logger.debug(f"Resolved renamed file {item.path} -> {f.filename}")
            return f.filename

    basename = posixpath.basename(item.path)
    if basename:
        for f in files:
            if posixpath.basename(f.filename) == basename:
                logger.debug(f"Resolved {item.path} to {f.filename} by file name only")
                return f.filename

    return None


def index_files(files: Iterable[PullRequestFile]) -> Dict[str, PullRequestFile]:
    """Index changed files by filename.

    GitHub should never list a filename twice, but when it does the last
    entry wins.
    """
    indexed: Dict[str, PullRequestFile] = {}
    for f in files:
        if f.filename in indexed:
            logger.debug(f"Duplicate filename in PR file list, keeping last entry: {f.filename}")
        indexed[f.filename] = f
    return indexed
