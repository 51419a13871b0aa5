"""
Markdown rendering for the PR Reporter channels.

Rendering must be deterministic: the same feedback always produces the same
text, because change detection compares fingerprints of rendered bodies.
"""

from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .comment_marker import STICKY_SENTINEL
from .models import FeedbackItem, Severity


SEVERITY_ORDER = [Severity.FAILURE, Severity.WARNING, Severity.NOTICE]

SEVERITY_ICONS = {
    Severity.FAILURE: ":x:",
    Severity.WARNING: ":warning:",
    Severity.NOTICE: ":information_source:",
}

SEVERITY_HEADINGS = {
    Severity.FAILURE: "Errors",
    Severity.WARNING: "Warnings",
    Severity.NOTICE: "Notices",
}

NO_ISSUES = ":white_check_mark: No issues found."


def severity_icon(severity: Severity) -> str:
    return SEVERITY_ICONS[severity]


def render_line_comment(item: FeedbackItem) -> str:
    """Body of a review comment for one item."""
    body = f"{severity_icon(item.severity)} "
    if item.title:
        body += f"**{item.title}**\n\n"
    body += item.message
    if item.sticky:
        body += f"\n{STICKY_SENTINEL}"
    return body


def deduplicate(items: Sequence[FeedbackItem]) -> List[Tuple[FeedbackItem, int]]:
    """Collapse items with the same tracking identity, counting repeats.

    Returns:
        (first item seen, count) pairs sorted by path then line
    """
    seen: "OrderedDict[Tuple[str, int, str], List]" = OrderedDict()
    for item in items:
        entry = seen.get(item.tracking_identity)
        if entry is None:
            seen[item.tracking_identity] = [item, 1]
        else:
            entry[1] += 1
    return sorted(
        ((item, count) for item, count in seen.values()),
        key=lambda pair: (pair[0].path, pair[0].line, pair[0].message),
    )


def _quote(message: str) -> str:
    return "\n".join(f"  > {line}" if line else "  >" for line in message.split("\n"))


def render_summary(
    items: Sequence[FeedbackItem],
    link: Callable[[str, Optional[int]], str],
    run_url: Optional[str] = None,
) -> str:
    """Aggregate body for the summary comment.

    Items are grouped by severity (errors first), then by file. Repeated items
    are shown once with a ``×N`` count.

    Args:
        items: Feedback to summarize
        link: Builds a URL for a path and optional line at the reported commit
        run_url: Workflow run to link to, if known
    """
    deduplicated = deduplicate(items)
    body = ""

    for severity in SEVERITY_ORDER:
        group = [(item, count) for item, count in deduplicated if item.severity is severity]
        if not group:
            continue
        total = sum(count for _, count in group)
        body += f"## {severity_icon(severity)} {SEVERITY_HEADINGS[severity]} ({total})\n\n"

        by_file: "OrderedDict[str, List[Tuple[FeedbackItem, int]]]" = OrderedDict()
        for item, count in group:
            by_file.setdefault(item.path, []).append((item, count))

        for path in sorted(by_file):
            body += f"### [`{path}`]({link(path, None)})\n\n"
            for item, count in by_file[path]:
                line = f"- **[Line {item.line}]({link(path, item.line)})**"
                if item.title:
                    line += f" - {item.title}"
                if count > 1:
                    line += f" ×{count}"
                body += f"{line}\n{_quote(item.message)}\n"
                if item.sticky:
                    body += f"  {STICKY_SENTINEL}\n"
            body += "\n"

    if not items:
        body = f"{NO_ISSUES}\n"

    if run_url:
        body += f"\n---\n[View full logs →]({run_url})\n"

    return body


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def render_check_summary(items: Sequence[FeedbackItem]) -> str:
    """One-line tally used as the check run output summary."""
    failures = sum(1 for i in items if i.severity is Severity.FAILURE)
    warnings = sum(1 for i in items if i.severity is Severity.WARNING)
    notices = sum(1 for i in items if i.severity is Severity.NOTICE)

    parts = []
    if failures:
        parts.append(f"**{_plural(failures, 'error')}**")
    if warnings:
        parts.append(_plural(warnings, "warning"))
    if notices:
        parts.append(_plural(notices, "notice"))
    return ", ".join(parts) if parts else "No issues found"


def to_check_annotation(item: FeedbackItem) -> Dict[str, Any]:
    """Check run annotation payload for one item.

    Columns are only sent for single-line annotations, which is all the API
    accepts them for.
    """
    end_line = item.end_line if item.end_line and item.end_line >= item.line else item.line
    annotation: Dict[str, Any] = {
        "path": item.path,
        "start_line": item.line,
        "end_line": end_line,
        "annotation_level": item.severity.value,
        "message": item.message,
    }
    if item.title:
        annotation["title"] = item.title
    if item.column is not None and end_line == item.line:
        annotation["start_column"] = item.column
        annotation["end_column"] = item.column
    return annotation
