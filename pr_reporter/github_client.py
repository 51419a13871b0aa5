"""
GitHub API client for the PR Reporter.

This module wraps PyGithub (and a ``requests`` session for the one call
PyGithub does not expose) behind the small set of operations the reporters
need: pull request files, review comments, issue comments and check runs.
Failures are translated into a small exception hierarchy, and transient
failures are retried with tenacity.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import requests
from github import (
    BadCredentialsException, Github, GithubException, RateLimitExceededException, UnknownObjectException
)
from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import GitHubConfig
from .models import CheckRunInfo, CheckRunStatus, PullRequestFile, TrackedComment


logger = logging.getLogger(__name__)


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(GitHubClientError):
    """Exception raised when a repository, pull request or comment does not exist."""
    pass


class AuthenticationError(GitHubClientError):
    """Exception raised when the token is rejected or lacks permissions."""
    pass


class RateLimitError(GitHubClientError):
    """Exception raised when GitHub API rate limit is exceeded."""
    pass


class TransientGitHubError(GitHubClientError):
    """Exception raised for server errors and network failures worth retrying."""
    pass


RETRYABLE_ERRORS = (RateLimitError, TransientGitHubError)


def error_for_status(status_code: Optional[int], message: str) -> GitHubClientError:
    """Pick the exception type for an HTTP status code."""
    lowered = message.lower()
    if status_code == 404:
        return NotFoundError(message, status_code)
    if status_code == 429 or (status_code == 403 and "rate limit" in lowered):
        return RateLimitError(message, status_code)
    if status_code in (401, 403):
        return AuthenticationError(message, status_code)
    if status_code is not None and status_code >= 500:
        return TransientGitHubError(message, status_code)
    return GitHubClientError(message, status_code)


def translate_github_exception(exc: GithubException, action: str) -> GitHubClientError:
    """Map a PyGithub exception onto our error types."""
    message = f"Failed to {action}: {exc.status} {exc.data}"
    if isinstance(exc, RateLimitExceededException):
        return RateLimitError(message, exc.status)
    if isinstance(exc, BadCredentialsException):
        return AuthenticationError(message, exc.status)
    if isinstance(exc, UnknownObjectException):
        return NotFoundError(message, exc.status)
    return error_for_status(exc.status, message)


def _iso_now() -> datetime:
    return datetime.now(timezone.utc)


class GitHubClient:
    """GitHub API client with retry logic and error translation."""

    def __init__(self, config: GitHubConfig, repository: str):
        """Initialize GitHub client with configuration.

        Args:
            config: GitHub configuration (token, API URL, retry settings)
            repository: Repository in ``owner/repo`` format
        """
        self.config = config
        self.repository = repository
        self._client = Github(config.token, base_url=config.api_base_url, timeout=config.timeout)
        self._session = requests.Session()
        self._session.headers.update({
            'Authorization': f'Bearer {config.token}',
            'User-Agent': 'PR-Reporter/1.0',
            'Accept': 'application/vnd.github+json'
        })
        self._retrying = Retrying(
            stop=stop_after_attempt(config.max_retries),
            wait=wait_exponential(multiplier=1, min=config.retry_delay_min, max=config.retry_delay_max),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        self._repo = None

        logger.info(f"Initialized GitHub client for {repository}")

    def _call(self, action: str, func: Callable, *args, **kwargs):
        """Run ``func`` with error translation and retries."""
        def attempt():
            try:
                return func(*args, **kwargs)
            except GithubException as e:
                raise translate_github_exception(e, action) from e
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                raise TransientGitHubError(f"Failed to {action}: {e}") from e

        return self._retrying(attempt)

    @property
    def repo(self):
        """The PyGithub repository object, fetched once."""
        if self._repo is None:
            self._repo = self._call(f"get repository {self.repository}", self._client.get_repo, self.repository)
        return self._repo

    def _pull(self, number: int):
        return self._call(f"get pull request #{number}", self.repo.get_pull, number)

    def _issue(self, number: int):
        return self._call(f"get issue #{number}", self.repo.get_issue, number)

    # Pull request files

    def get_pull_request_files(self, number: int) -> List[PullRequestFile]:
        """List the files changed in a pull request, following pagination."""
        pr = self._pull(number)

        def fetch():
            return [
                PullRequestFile(
                    filename=f.filename,
                    status=f.status,
                    patch=getattr(f, 'patch', None),
                    previous_filename=getattr(f, 'previous_filename', None),
                    additions=f.additions,
                    deletions=f.deletions,
                    changes=f.changes,
                    sha=f.sha,
                )
                for f in pr.get_files()
            ]

        files = self._call(f"list files of pull request #{number}", fetch)
        logger.info(f"Retrieved {len(files)} files from PR #{number}")
        return files

    # Review comments

    @staticmethod
    def _review_comment(comment) -> TrackedComment:
        return TrackedComment(
            id=comment.id,
            body=comment.body or "",
            path=comment.path,
            line=getattr(comment, 'line', None),
            side=getattr(comment, 'side', None),
            position=comment.position,
            url=comment.html_url,
        )

    def list_review_comments(self, number: int) -> List[TrackedComment]:
        pr = self._pull(number)
        comments = self._call(
            f"list review comments of pull request #{number}",
            lambda: [self._review_comment(c) for c in pr.get_review_comments()],
        )
        logger.debug(f"Found {len(comments)} review comments on PR #{number}")
        return comments

    def create_review_comment(
        self, number: int, body: str, commit_sha: str, path: str, position: int
    ) -> TrackedComment:
        """Create a review comment anchored by diff position.

        PyGithub only offers line based anchoring, so this goes through the
        REST endpoint directly.
        """
        url = f"{self.config.api_base_url}/repos/{self.repository}/pulls/{number}/comments"
        payload = {"body": body, "commit_id": commit_sha, "path": path, "position": position}

        def post():
            response = self._session.post(url, json=payload, timeout=self.config.timeout)
            if response.status_code not in (200, 201):
                raise error_for_status(
                    response.status_code,
                    f"Failed to create review comment on {path}: {response.status_code} {response.text[:500]}",
                )
            return response.json()

        data = self._call(f"create review comment on {path}", post)
        logger.debug(f"Created review comment {data.get('id')} on {path} at position {position}")
        return TrackedComment(
            id=data["id"],
            body=data.get("body", body),
            path=data.get("path", path),
            line=data.get("line"),
            side=data.get("side"),
            position=data.get("position", position),
            url=data.get("html_url"),
        )

    def update_review_comment(self, number: int, comment_id: int, body: str) -> TrackedComment:
        pr = self._pull(number)

        def edit():
            comment = pr.get_review_comment(comment_id)
            comment.edit(body)
            return comment

        comment = self._call(f"update review comment {comment_id}", edit)
        logger.debug(f"Updated review comment {comment_id}")
        return self._review_comment(comment)

    def delete_review_comment(self, number: int, comment_id: int) -> None:
        pr = self._pull(number)
        self._call(f"delete review comment {comment_id}", lambda: pr.get_review_comment(comment_id).delete())
        logger.debug(f"Deleted review comment {comment_id}")

    # Issue comments

    @staticmethod
    def _issue_comment(comment) -> TrackedComment:
        return TrackedComment(id=comment.id, body=comment.body or "", url=comment.html_url)

    def list_issue_comments(self, number: int) -> List[TrackedComment]:
        issue = self._issue(number)
        comments = self._call(
            f"list comments of #{number}",
            lambda: [self._issue_comment(c) for c in issue.get_comments()],
        )
        logger.debug(f"Found {len(comments)} issue comments on #{number}")
        return comments

    def create_issue_comment(self, number: int, body: str) -> TrackedComment:
        issue = self._issue(number)
        comment = self._call(f"create comment on #{number}", issue.create_comment, body)
        logger.debug(f"Created comment {comment.id} on #{number}")
        return self._issue_comment(comment)

    def update_issue_comment(self, number: int, comment_id: int, body: str) -> TrackedComment:
        issue = self._issue(number)

        def edit():
            comment = issue.get_comment(comment_id)
            comment.edit(body)
            return comment

        comment = self._call(f"update comment {comment_id}", edit)
        logger.debug(f"Updated comment {comment_id}")
        return self._issue_comment(comment)

    def delete_issue_comment(self, number: int, comment_id: int) -> None:
        issue = self._issue(number)
        self._call(f"delete comment {comment_id}", lambda: issue.get_comment(comment_id).delete())
        logger.debug(f"Deleted comment {comment_id}")

    # Check runs

    @staticmethod
    def _check_run(run) -> CheckRunInfo:
        return CheckRunInfo(
            id=run.id,
            name=run.name,
            external_id=run.external_id,
            status=run.status,
            conclusion=run.conclusion,
            url=run.html_url,
        )

    def find_check_run(self, sha: str, external_id: str) -> Optional[CheckRunInfo]:
        """Find the check run on a commit carrying ``external_id``."""
        def search():
            commit = self.repo.get_commit(sha)
            for run in commit.get_check_runs(filter="all"):
                if run.external_id == external_id:
                    return self._check_run(run)
            return None

        found = self._call(f"list check runs for {sha[:7]}", search)
        if found:
            logger.debug(f"Found check run {found.id} with external id {external_id}")
        return found

    def create_check_run(
        self,
        name: str,
        head_sha: str,
        external_id: str,
        output: Dict[str, Any],
        status: CheckRunStatus = CheckRunStatus.IN_PROGRESS,
    ) -> CheckRunInfo:
        run = self._call(
            f"create check run '{name}'",
            self.repo.create_check_run,
            name=name,
            head_sha=head_sha,
            external_id=external_id,
            status=status.value,
            started_at=_iso_now(),
            output=output,
        )
        logger.info(f"Created check run '{name}' ({run.id})")
        return self._check_run(run)

    def update_check_run(
        self,
        check_run_id: int,
        output: Dict[str, Any],
        status: Optional[CheckRunStatus] = None,
        conclusion: Optional[str] = None,
    ) -> CheckRunInfo:
        """Update a check run; passing a conclusion completes it."""
        fields: Dict[str, Any] = {"output": output}
        if status is not None:
            fields["status"] = status.value
        if conclusion is not None:
            fields["conclusion"] = conclusion
            fields["completed_at"] = _iso_now()

        def edit():
            run = self.repo.get_check_run(check_run_id)
            run.edit(**fields)
            return run

        run = self._call(f"update check run {check_run_id}", edit)
        logger.debug(f"Updated check run {check_run_id} ({len(output.get('annotations', []))} annotations)")
        return self._check_run(run)

    def close(self):
        """Clean up resources."""
        if hasattr(self, '_session'):
            self._session.close()
        logger.debug("GitHub client closed")
