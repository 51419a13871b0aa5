"""
Pytest configuration and fixtures for pr_reporter tests.
"""

import pytest
import sys
import os

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pr_reporter.context import GitHubContext
from pr_reporter.diff_mapper import parse_hunks
from pr_reporter.models import CheckRunInfo, FeedbackItem, PullRequestFile, Severity, TrackedComment


SAMPLE_PATCH = """@@ -1,5 +1,6 @@
 line1
-removed
+added1
+added2
 line3
 line4"""


class FakeGitHubClient:
    """In-memory stand-in for GitHubClient used by reporter tests.

    Review comments and issue comments are kept in dicts keyed by id; ids are
    handed out in increasing order like GitHub does. Every call is recorded
    in ``calls`` so tests can assert on what would have hit the API.
    """

    def __init__(self, files=None, review_comments=None, issue_comments=None, check_runs=None):
        self.files = list(files or [])
        self.review_comments = {c.id: c for c in (review_comments or [])}
        self.issue_comments = {c.id: c for c in (issue_comments or [])}
        self.check_runs = {r.id: r for r in (check_runs or [])}
        self.check_run_updates = []
        self.calls = []
        existing_ids = list(self.review_comments) + list(self.issue_comments) + list(self.check_runs)
        self._next_id = max(existing_ids, default=1000) + 1

    def _new_id(self):
        new_id = self._next_id
        self._next_id += 1
        return new_id

    def get_pull_request_files(self, number):
        self.calls.append(("get_pull_request_files", number))
        return list(self.files)

    def list_review_comments(self, number):
        self.calls.append(("list_review_comments", number))
        return list(self.review_comments.values())

    def create_review_comment(self, number, body, commit_sha, path, position):
        self.calls.append(("create_review_comment", path, position))
        line = None
        for f in self.files:
            if f.filename == path:
                for hunk in parse_hunks(f.patch):
                    for diff_line in hunk.lines:
                        if diff_line.position == position:
                            line = diff_line.new_line
        comment = TrackedComment(id=self._new_id(), body=body, path=path, line=line, position=position,
                                 url=f"https://github.com/owner/repo/pull/{number}#discussion")
        self.review_comments[comment.id] = comment
        return comment

    def update_review_comment(self, number, comment_id, body):
        self.calls.append(("update_review_comment", comment_id))
        self.review_comments[comment_id].body = body
        return self.review_comments[comment_id]

    def delete_review_comment(self, number, comment_id):
        self.calls.append(("delete_review_comment", comment_id))
        del self.review_comments[comment_id]

    def list_issue_comments(self, number):
        self.calls.append(("list_issue_comments", number))
        return list(self.issue_comments.values())

    def create_issue_comment(self, number, body):
        self.calls.append(("create_issue_comment", number))
        comment = TrackedComment(id=self._new_id(), body=body,
                                 url=f"https://github.com/owner/repo/pull/{number}#issuecomment")
        self.issue_comments[comment.id] = comment
        return comment

    def update_issue_comment(self, number, comment_id, body):
        self.calls.append(("update_issue_comment", comment_id))
        self.issue_comments[comment_id].body = body
        return self.issue_comments[comment_id]

    def delete_issue_comment(self, number, comment_id):
        self.calls.append(("delete_issue_comment", comment_id))
        del self.issue_comments[comment_id]

    def find_check_run(self, sha, external_id):
        self.calls.append(("find_check_run", external_id))
        for run in self.check_runs.values():
            if run.external_id == external_id:
                return run
        return None

    def create_check_run(self, name, head_sha, external_id, output, status=None):
        self.calls.append(("create_check_run", name, external_id))
        run = CheckRunInfo(id=self._new_id(), name=name, external_id=external_id, status="in_progress",
                           url=f"https://github.com/owner/repo/runs/{self._next_id}")
        self.check_runs[run.id] = run
        return run

    def update_check_run(self, check_run_id, output, status=None, conclusion=None):
        self.calls.append(("update_check_run", check_run_id))
        self.check_run_updates.append({
            "id": check_run_id, "output": output, "status": status, "conclusion": conclusion,
        })
        run = self.check_runs[check_run_id]
        if status is not None:
            run.status = status.value
        if conclusion is not None:
            run.conclusion = conclusion
        return run

    def close(self):
        self.calls.append(("close",))

    def writes(self):
        """Recorded calls that would modify GitHub."""
        prefixes = ("create_", "update_", "delete_")
        return [call for call in self.calls if call[0].startswith(prefixes)]


@pytest.fixture
def sample_patch():
    """Provide the sample patch used across diff tests."""
    return SAMPLE_PATCH


@pytest.fixture
def context():
    """A pull request context that can write."""
    return GitHubContext(
        token="ghp_test123456789012",
        repository="owner/repo",
        commit_sha="abc123def456",
        pull_request=42,
        run_id=1001,
        run_attempt=1,
        event_name="pull_request",
    )


@pytest.fixture
def make_item():
    """Factory for feedback items with sensible defaults."""
    def _make(path="src/app.py", line=2, message="Unused variable", severity=Severity.WARNING, **kwargs):
        return FeedbackItem(path=path, line=line, severity=severity, message=message, **kwargs)
    return _make


@pytest.fixture
def pr_files():
    """Changed files of the pull request used by reporter tests."""
    return [PullRequestFile(filename="src/app.py", patch=SAMPLE_PATCH)]


@pytest.fixture
def fake_client(pr_files):
    return FakeGitHubClient(files=pr_files)


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch):
    """Reset environment variables for each test."""
    # Clear potentially interfering environment variables
    for key in list(os.environ.keys()):
        if key.startswith(("GITHUB_", "INPUT_", "PR_REPORTER_", "LOG_")) or key == "ENABLE_FILE_LOGGING":
            monkeypatch.delenv(key, raising=False)
