"""
GitHub Actions context discovery for the PR Reporter.

Reads the workflow environment (``GITHUB_*`` variables) and the event payload
to find the repository, the commit to annotate, the pull request number and
whether the run comes from a fork.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .env_reader import get_env_int, get_env_str


logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "https://github.com"


class ContextError(Exception):
    """Base exception for context discovery errors."""
    pass


class MissingVariableError(ContextError):
    """Exception raised when a required environment variable is missing."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Missing required environment variable: {name}")


class InvalidEventPayloadError(ContextError):
    """Exception raised when the event payload file is missing or invalid."""
    pass


class MissingPullRequestError(ContextError):
    """Exception raised when an operation needs a pull request number and none is known."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or (
            "Pull request number could not be determined. "
            "Ensure this is a pull request event or provide the number explicitly."
        ))


class ReadOnlyTokenError(ContextError):
    """Exception raised when writing is impossible, e.g. for pull requests from forks."""
    pass


@dataclass
class EventPayload:
    """What the reporter needs from the event payload."""
    pull_request_number: Optional[int] = None
    is_fork: bool = False
    head_sha: Optional[str] = None


def parse_event_payload(data: Dict[str, Any]) -> EventPayload:
    """Extract pull request number, fork status and head commit from an event.

    Handles ``pull_request`` events, ``issue_comment`` events on pull requests
    and events carrying a top-level ``number``.
    """
    payload = EventPayload()
    if not isinstance(data, dict):
        return payload

    pull_request = data.get("pull_request")
    issue = data.get("issue")
    if isinstance(pull_request, dict) and isinstance(pull_request.get("number"), int):
        payload.pull_request_number = pull_request["number"]
    elif isinstance(issue, dict) and isinstance(issue.get("number"), int) and issue.get("pull_request"):
        payload.pull_request_number = issue["number"]
    elif isinstance(data.get("number"), int):
        payload.pull_request_number = data["number"]

    if isinstance(pull_request, dict):
        head = pull_request.get("head") or {}
        base = pull_request.get("base") or {}
        head_repo = head.get("repo") or {}
        base_repo = base.get("repo") or {}

        head_name = head_repo.get("full_name")
        base_name = base_repo.get("full_name")
        if head_name and base_name:
            payload.is_fork = head_name != base_name
        if head_repo.get("fork") is True:
            payload.is_fork = True
        payload.head_sha = head.get("sha") or None

    return payload


def load_event_payload(event_path: str) -> EventPayload:
    """Load and parse the event payload file named by ``GITHUB_EVENT_PATH``."""
    try:
        with open(event_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise InvalidEventPayloadError(f"Event file not found at {event_path}")
    except json.JSONDecodeError as e:
        raise InvalidEventPayloadError(f"Event file is not valid JSON: {e}")
    except OSError as e:
        raise InvalidEventPayloadError(f"Could not read event file: {e}")

    if not isinstance(data, dict):
        raise InvalidEventPayloadError("Event payload must be a JSON object")

    logger.debug(f"Loaded event payload from {event_path}")
    return parse_event_payload(data)


@dataclass
class GitHubContext:
    """Where the reporter runs and what it writes to."""
    token: str
    repository: str
    commit_sha: str
    pull_request: Optional[int] = None
    head_ref: Optional[str] = None
    base_ref: Optional[str] = None
    run_id: Optional[int] = None
    run_attempt: int = 1
    event_name: str = "workflow_dispatch"
    is_fork: bool = False
    server_url: str = DEFAULT_SERVER_URL

    def __post_init__(self):
        parts = (self.repository or "").split("/")
        if len(parts) != 2 or not all(parts):
            raise ValueError(f"Repository must be in 'owner/repo' format, got {self.repository!r}")
        self.server_url = (self.server_url or DEFAULT_SERVER_URL).rstrip("/")

    @property
    def owner(self) -> str:
        return self.repository.split("/")[0]

    @property
    def repo(self) -> str:
        return self.repository.split("/")[1]

    @property
    def run_url(self) -> Optional[str]:
        """Link to the workflow run, when the run id is known."""
        if self.run_id is None:
            return None
        return f"{self.server_url}/{self.repository}/actions/runs/{self.run_id}"

    @classmethod
    def from_environment(cls) -> 'GitHubContext':
        """Build the context from GitHub Actions environment variables.

        Raises:
            MissingVariableError: If a required variable is not set
            InvalidEventPayloadError: If ``GITHUB_EVENT_PATH`` is set but unreadable
        """
        required = {}
        for name in ("GITHUB_REPOSITORY", "GITHUB_SHA", "GITHUB_EVENT_NAME"):
            value = get_env_str(name)
            if not value:
                raise MissingVariableError(name)
            required[name] = value

        token = get_env_str("GITHUB_TOKEN", "", "INPUT_GITHUB_TOKEN", "INPUT_TOKEN")
        if not token:
            raise MissingVariableError("GITHUB_TOKEN")

        payload = EventPayload()
        event_path = get_env_str("GITHUB_EVENT_PATH")
        if event_path:
            payload = load_event_payload(event_path)

        run_id = get_env_int("GITHUB_RUN_ID", 0) or None

        # For pull_request events GITHUB_SHA is the merge commit; annotate the head instead
        commit_sha = payload.head_sha or required["GITHUB_SHA"]

        context = cls(
            token=token,
            repository=required["GITHUB_REPOSITORY"],
            commit_sha=commit_sha,
            pull_request=payload.pull_request_number,
            head_ref=get_env_str("GITHUB_HEAD_REF") or None,
            base_ref=get_env_str("GITHUB_BASE_REF") or None,
            run_id=run_id,
            run_attempt=get_env_int("GITHUB_RUN_ATTEMPT", 1),
            event_name=required["GITHUB_EVENT_NAME"],
            is_fork=payload.is_fork,
            server_url=get_env_str("GITHUB_SERVER_URL", DEFAULT_SERVER_URL),
        )
        logger.info(
            f"Context: {context.repository}@{context.commit_sha[:7]} "
            f"PR #{context.pull_request} event={context.event_name} fork={context.is_fork}"
        )
        return context

    def validate_write_access(self) -> None:
        """Raise ReadOnlyTokenError when the token cannot write (fork pull requests)."""
        if self.is_fork:
            raise ReadOnlyTokenError("Cannot write to a pull request from a fork: the token has read-only access")

    def require_pull_request(self) -> int:
        """Return the pull request number or raise MissingPullRequestError."""
        if self.pull_request is None:
            raise MissingPullRequestError()
        return self.pull_request

    def blob_url(self, path: str, line: Optional[int] = None) -> str:
        """Link to a file (and optionally a line) at the annotated commit."""
        url = f"{self.server_url}/{self.repository}/blob/{self.commit_sha}/{path}"
        if line is not None:
            url += f"#L{line}"
        return url
