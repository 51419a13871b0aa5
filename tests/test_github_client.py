"""
Tests for pr_reporter/github_client.py
"""

import pytest
import requests
from unittest.mock import MagicMock, Mock, patch

from github import BadCredentialsException, GithubException, RateLimitExceededException, UnknownObjectException

from pr_reporter.config import GitHubConfig
from pr_reporter.github_client import (
    AuthenticationError,
    GitHubClient,
    GitHubClientError,
    NotFoundError,
    RateLimitError,
    TransientGitHubError,
    error_for_status,
    translate_github_exception,
)
from pr_reporter.models import CheckRunStatus


@pytest.fixture
def valid_config():
    """GitHubConfig that retries without sleeping."""
    return GitHubConfig(
        token="ghp_test123456789012",
        api_base_url="https://api.github.com",
        timeout=30,
        max_retries=3,
        retry_delay_min=0,
        retry_delay_max=0,
    )


@pytest.fixture
def mock_github():
    with patch("pr_reporter.github_client.Github") as mock:
        yield mock


@pytest.fixture
def mock_session():
    with patch("pr_reporter.github_client.requests.Session") as mock:
        yield mock


@pytest.fixture
def repo(mock_github):
    repo = MagicMock()
    mock_github.return_value.get_repo.return_value = repo
    return repo


@pytest.fixture
def client(valid_config, mock_github, mock_session, repo):
    return GitHubClient(valid_config, "owner/repo")


def _named_mock(name, **attrs):
    obj = Mock(**attrs)
    obj.name = name
    return obj


class TestErrorMapping:
    """Tests for error_for_status and translate_github_exception."""

    @pytest.mark.parametrize("status,message,expected", [
        (404, "Not Found", NotFoundError),
        (429, "Too Many Requests", RateLimitError),
        (403, "API rate limit exceeded", RateLimitError),
        (403, "Resource not accessible by integration", AuthenticationError),
        (401, "Bad credentials", AuthenticationError),
        (502, "Bad Gateway", TransientGitHubError),
        (422, "Validation Failed", GitHubClientError),
        (None, "no status", GitHubClientError),
    ])
    def test_error_for_status(self, status, message, expected):
        error = error_for_status(status, message)
        assert type(error) is expected
        assert error.status_code == status
        assert str(error) == message

    def test_hierarchy(self):
        for error_type in (NotFoundError, AuthenticationError, RateLimitError, TransientGitHubError):
            assert issubclass(error_type, GitHubClientError)

    @pytest.mark.parametrize("exc,expected", [
        (UnknownObjectException(404, {"message": "Not Found"}, None), NotFoundError),
        (BadCredentialsException(401, {"message": "Bad credentials"}, None), AuthenticationError),
        (RateLimitExceededException(403, {"message": "rate"}, None), RateLimitError),
        (GithubException(500, {"message": "boom"}, None), TransientGitHubError),
        (GithubException(403, {"message": "Forbidden"}, None), AuthenticationError),
    ])
    def test_translate_github_exception(self, exc, expected):
        error = translate_github_exception(exc, "do things")
        assert type(error) is expected
        assert str(error).startswith("Failed to do things:")


class TestGitHubClientInit:
    """Tests for GitHubClient construction."""

    def test_init(self, valid_config, mock_github, mock_session):
        """Test PyGithub and the session are configured from the config."""
        client = GitHubClient(valid_config, "owner/repo")
        mock_github.assert_called_once_with(valid_config.token, base_url="https://api.github.com", timeout=30)
        mock_session.return_value.headers.update.assert_called_once()
        headers = mock_session.return_value.headers.update.call_args[0][0]
        assert headers["Authorization"] == f"Bearer {valid_config.token}"
        assert client.repository == "owner/repo"

    def test_repo_fetched_once(self, client, mock_github, repo):
        assert client.repo is repo
        assert client.repo is repo
        mock_github.return_value.get_repo.assert_called_once_with("owner/repo")

    def test_close(self, client, mock_session):
        client.close()
        mock_session.return_value.close.assert_called_once()


class TestRetries:
    """Tests for retry behaviour."""

    def test_transient_error_retried(self, client, repo):
        """Test a 5xx followed by success returns the result."""
        pr = MagicMock()
        pr.get_files.return_value = []
        repo.get_pull.side_effect = [GithubException(502, {"message": "Bad Gateway"}, None), pr]
        assert client.get_pull_request_files(1) == []
        assert repo.get_pull.call_count == 2

    def test_retries_exhausted(self, client, repo):
        """Test the last error is raised after max_retries attempts."""
        repo.get_pull.side_effect = GithubException(500, {"message": "boom"}, None)
        with pytest.raises(TransientGitHubError):
            client.get_pull_request_files(1)
        assert repo.get_pull.call_count == 3

    def test_not_found_not_retried(self, client, repo):
        repo.get_pull.side_effect = UnknownObjectException(404, {"message": "Not Found"}, None)
        with pytest.raises(NotFoundError):
            client.get_pull_request_files(1)
        assert repo.get_pull.call_count == 1

    def test_rate_limit_retried(self, client, repo):
        pr = MagicMock()
        pr.get_files.return_value = []
        repo.get_pull.side_effect = [RateLimitExceededException(403, {"message": "rate"}, None), pr]
        client.get_pull_request_files(1)
        assert repo.get_pull.call_count == 2

    def test_connection_error_is_transient(self, client, mock_session):
        mock_session.return_value.post.side_effect = requests.exceptions.ConnectionError("reset")
        with pytest.raises(TransientGitHubError):
            client.create_review_comment(1, "body", "abc", "a.py", 3)
        assert mock_session.return_value.post.call_count == 3


class TestPullRequestFiles:
    """Tests for get_pull_request_files."""

    def test_maps_files(self, client, repo):
        pr = MagicMock()
        pr.get_files.return_value = [
            Mock(filename="New.swift", status="renamed", patch="@@ -1 +1 @@\n+x", previous_filename="Old.swift",
                 additions=1, deletions=0, changes=1, sha="s1"),
            Mock(filename="logo.png", status="added", patch=None, previous_filename=None,
                 additions=0, deletions=0, changes=0, sha="s2"),
        ]
        repo.get_pull.return_value = pr
        files = client.get_pull_request_files(5)
        repo.get_pull.assert_called_once_with(5)
        assert [f.filename for f in files] == ["New.swift", "logo.png"]
        assert files[0].previous_filename == "Old.swift"
        assert files[0].patch.startswith("@@")
        assert files[1].patch is None


class TestReviewComments:
    """Tests for review comment operations."""

    def test_list_review_comments(self, client, repo):
        pr = MagicMock()
        pr.get_review_comments.return_value = [
            Mock(id=1, body="hi", path="a.py", line=3, side="RIGHT", position=4, html_url="u1"),
            Mock(id=2, body=None, path="b.py", line=None, side="RIGHT", position=None, html_url="u2"),
        ]
        repo.get_pull.return_value = pr
        comments = client.list_review_comments(9)
        assert comments[0].id == 1
        assert comments[0].line == 3
        assert comments[0].position == 4
        assert comments[1].body == ""
        assert comments[1].line is None

    def test_create_review_comment_posts_position(self, client, mock_session):
        """Test the comment is anchored by diff position through the REST endpoint."""
        response = Mock(status_code=201)
        response.json.return_value = {
            "id": 77, "body": "text", "path": "a.py", "line": 3, "side": "RIGHT", "position": 4, "html_url": "u",
        }
        mock_session.return_value.post.return_value = response

        comment = client.create_review_comment(12, "text", "abc123", "a.py", 4)

        mock_session.return_value.post.assert_called_once_with(
            "https://api.github.com/repos/owner/repo/pulls/12/comments",
            json={"body": "text", "commit_id": "abc123", "path": "a.py", "position": 4},
            timeout=30,
        )
        assert comment.id == 77
        assert comment.line == 3
        assert comment.url == "u"

    def test_create_review_comment_validation_error(self, client, mock_session):
        """Test a 422 is raised without retrying."""
        mock_session.return_value.post.return_value = Mock(status_code=422, text="position is invalid")
        with pytest.raises(GitHubClientError) as exc_info:
            client.create_review_comment(12, "text", "abc123", "a.py", 99)
        assert exc_info.value.status_code == 422
        assert mock_session.return_value.post.call_count == 1

    def test_update_review_comment(self, client, repo):
        pr = MagicMock()
        comment = Mock(id=5, body="new", path="a.py", line=3, side="RIGHT", position=4, html_url="u")
        pr.get_review_comment.return_value = comment
        repo.get_pull.return_value = pr
        result = client.update_review_comment(1, 5, "new")
        pr.get_review_comment.assert_called_once_with(5)
        comment.edit.assert_called_once_with("new")
        assert result.id == 5

    def test_delete_review_comment(self, client, repo):
        pr = MagicMock()
        repo.get_pull.return_value = pr
        client.delete_review_comment(1, 5)
        pr.get_review_comment.return_value.delete.assert_called_once()


class TestIssueComments:
    """Tests for issue comment operations."""

    def test_list_issue_comments(self, client, repo):
        issue = MagicMock()
        issue.get_comments.return_value = [Mock(id=3, body="summary", html_url="u")]
        repo.get_issue.return_value = issue
        comments = client.list_issue_comments(4)
        repo.get_issue.assert_called_once_with(4)
        assert comments[0].id == 3
        assert comments[0].path is None

    def test_create_issue_comment(self, client, repo):
        issue = MagicMock()
        issue.create_comment.return_value = Mock(id=8, body="b", html_url="u")
        repo.get_issue.return_value = issue
        comment = client.create_issue_comment(4, "b")
        issue.create_comment.assert_called_once_with("b")
        assert comment.id == 8

    def test_update_and_delete_issue_comment(self, client, repo):
        issue = MagicMock()
        existing = Mock(id=8, body="new", html_url="u")
        issue.get_comment.return_value = existing
        repo.get_issue.return_value = issue
        client.update_issue_comment(4, 8, "new")
        existing.edit.assert_called_once_with("new")
        client.delete_issue_comment(4, 8)
        existing.delete.assert_called_once()


class TestCheckRuns:
    """Tests for check run operations."""

    def test_find_check_run_by_external_id(self, client, repo):
        wanted = _named_mock("lint", id=2, external_id="lint-1001-1", status="completed",
                             conclusion="success", html_url="u")
        other = _named_mock("lint", id=1, external_id="lint-1000-1", status="completed",
                            conclusion="failure", html_url="u")
        repo.get_commit.return_value.get_check_runs.return_value = [other, wanted]
        found = client.find_check_run("abc123", "lint-1001-1")
        repo.get_commit.assert_called_once_with("abc123")
        repo.get_commit.return_value.get_check_runs.assert_called_once_with(filter="all")
        assert found.id == 2
        assert found.name == "lint"

    def test_find_check_run_missing(self, client, repo):
        repo.get_commit.return_value.get_check_runs.return_value = []
        assert client.find_check_run("abc123", "lint-1") is None

    def test_create_check_run(self, client, repo):
        repo.create_check_run.return_value = _named_mock(
            "SwiftLint", id=10, external_id="lint-1", status="in_progress", conclusion=None, html_url="u"
        )
        run = client.create_check_run("SwiftLint", "abc123", "lint-1", {"title": "t", "summary": "s"})
        kwargs = repo.create_check_run.call_args.kwargs
        assert kwargs["name"] == "SwiftLint"
        assert kwargs["head_sha"] == "abc123"
        assert kwargs["external_id"] == "lint-1"
        assert kwargs["status"] == "in_progress"
        assert run.id == 10
        assert run.name == "SwiftLint"

    def test_update_check_run_with_conclusion(self, client, repo):
        """Test a conclusion completes the run with a completion time."""
        run = _named_mock("lint", id=10, external_id="x", status="completed", conclusion="failure", html_url="u")
        repo.get_check_run.return_value = run
        output = {"title": "t", "summary": "s", "annotations": [{"path": "a.py"}]}
        client.update_check_run(10, output, status=CheckRunStatus.COMPLETED, conclusion="failure")
        fields = run.edit.call_args.kwargs
        assert fields["output"] == output
        assert fields["status"] == "completed"
        assert fields["conclusion"] == "failure"
        assert "completed_at" in fields

    def test_update_check_run_without_conclusion(self, client, repo):
        run = _named_mock("lint", id=10, external_id="x", status="in_progress", conclusion=None, html_url="u")
        repo.get_check_run.return_value = run
        client.update_check_run(10, {"title": "t", "summary": "s"})
        assert run.edit.call_args.kwargs == {"output": {"title": "t", "summary": "s"}}
