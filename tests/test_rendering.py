"""
Tests for pr_reporter/rendering.py
"""

from pr_reporter.comment_marker import STICKY_SENTINEL
from pr_reporter.models import FeedbackItem, Severity
from pr_reporter.rendering import (
    NO_ISSUES,
    deduplicate,
    render_check_summary,
    render_line_comment,
    render_summary,
    to_check_annotation,
)


def _link(path, line=None):
    return f"https://example.test/{path}" + (f"#L{line}" if line else "")


def _item(path="a.py", line=1, severity=Severity.WARNING, message="msg", **kwargs):
    return FeedbackItem(path=path, line=line, severity=severity, message=message, **kwargs)


class TestRenderLineComment:
    """Tests for review comment bodies."""

    def test_plain(self):
        assert render_line_comment(_item(message="Unused variable")) == ":warning: Unused variable"

    def test_with_title_and_sticky(self):
        """Test title is bolded and sticky items carry the sentinel."""
        item = _item(severity=Severity.FAILURE, title="Force unwrap", message="Avoid !", sticky=True)
        assert render_line_comment(item) == f":x: **Force unwrap**\n\nAvoid !\n{STICKY_SENTINEL}"

    def test_notice_icon(self):
        assert render_line_comment(_item(severity=Severity.NOTICE)).startswith(":information_source: ")


class TestDeduplicate:
    """Tests for deduplicate."""

    def test_counts_repeats(self):
        """Test identical identities collapse with a count."""
        items = [_item(line=2), _item(line=1), _item(line=2, severity=Severity.FAILURE)]
        result = deduplicate(items)
        assert [(i.line, count) for i, count in result] == [(1, 1), (2, 2)]
        # first one seen is kept
        assert result[1][0].severity is Severity.WARNING

    def test_sorted_by_path_then_line(self):
        items = [_item(path="b.py", line=1), _item(path="a.py", line=9), _item(path="a.py", line=3)]
        assert [(i.path, i.line) for i, _ in deduplicate(items)] == [("a.py", 3), ("a.py", 9), ("b.py", 1)]


class TestRenderSummary:
    """Tests for the summary comment body."""

    def test_no_issues(self):
        assert render_summary([], _link) == f"{NO_ISSUES}\n"

    def test_groups_by_severity_and_file(self):
        """Test errors come before warnings and files are sorted."""
        items = [
            _item(path="b.py", line=4, message="warn b"),
            _item(path="a.py", line=2, severity=Severity.FAILURE, message="err a", title="Broken"),
        ]
        body = render_summary(items, _link)
        assert body == (
            "## :x: Errors (1)\n\n"
            "### [`a.py`](https://example.test/a.py)\n\n"
            "- **[Line 2](https://example.test/a.py#L2)** - Broken\n"
            "  > err a\n"
            "\n"
            "## :warning: Warnings (1)\n\n"
            "### [`b.py`](https://example.test/b.py)\n\n"
            "- **[Line 4](https://example.test/b.py#L4)**\n"
            "  > warn b\n"
            "\n"
        )

    def test_repeat_count_and_total(self):
        """Test repeated items render once with a count but count fully in the heading."""
        body = render_summary([_item(), _item()], _link)
        assert "## :warning: Warnings (2)" in body
        assert body.count("> msg") == 1
        assert "×2" in body

    def test_multiline_message_quoted(self):
        body = render_summary([_item(message="first\n\nsecond")], _link)
        assert "  > first\n  >\n  > second\n" in body

    def test_sticky_sentinel(self):
        assert STICKY_SENTINEL in render_summary([_item(sticky=True)], _link)

    def test_run_link(self):
        body = render_summary([], _link, run_url="https://github.com/o/r/actions/runs/1")
        assert body.endswith("\n---\n[View full logs →](https://github.com/o/r/actions/runs/1)\n")

    def test_deterministic(self):
        """Test input order does not change the output."""
        items = [_item(path="b.py"), _item(path="a.py", line=5), _item(path="a.py", line=1)]
        assert render_summary(items, _link) == render_summary(list(reversed(items)), _link)


class TestCheckOutput:
    """Tests for check run summary and annotations."""

    def test_check_summary_tally(self):
        items = [_item(severity=Severity.FAILURE), _item(severity=Severity.FAILURE), _item()]
        assert render_check_summary(items) == "**2 errors**, 1 warning"

    def test_check_summary_empty(self):
        assert render_check_summary([]) == "No issues found"

    def test_annotation_single_line_with_column(self):
        """Test columns are sent for single-line items."""
        annotation = to_check_annotation(_item(line=7, column=3, title="T"))
        assert annotation == {
            "path": "a.py",
            "start_line": 7,
            "end_line": 7,
            "annotation_level": "warning",
            "message": "msg",
            "title": "T",
            "start_column": 3,
            "end_column": 3,
        }

    def test_annotation_multi_line_drops_column(self):
        annotation = to_check_annotation(_item(line=7, end_line=9, column=3))
        assert annotation["end_line"] == 9
        assert "start_column" not in annotation

    def test_annotation_end_before_start(self):
        """Test an end line before the start collapses to the start line."""
        assert to_check_annotation(_item(line=7, end_line=2))["end_line"] == 7

    def test_failure_level(self):
        assert to_check_annotation(_item(severity=Severity.FAILURE))["annotation_level"] == "failure"
