"""
Summary comment channel for the PR Reporter.

Keeps one pull request conversation comment per identifier, rendered from all
feedback of a run and updated in place when its content changes.
"""

import logging
from typing import Hashable, Iterable, List, Optional

from .context import GitHubContext
from .models import Channel, CommentMode, FeedbackItem, ReportResult, TrackedComment
from .reconciler import owned_comments, plan_cleanup, plan_summary
from .rendering import render_summary
from .reporter import Reporter, execute_plan


logger = logging.getLogger(__name__)


class IssueCommentStore:
    """Pull request conversation comments as a tracked comment store."""

    def __init__(self, client, number: int):
        self.client = client
        self.number = number

    def list_tracked(self) -> List[TrackedComment]:
        return self.client.list_issue_comments(self.number)

    def create_tracked(self, body: str, key: Optional[Hashable] = None) -> TrackedComment:
        return self.client.create_issue_comment(self.number, body)

    def update_tracked(self, comment_id: int, body: str) -> TrackedComment:
        return self.client.update_issue_comment(self.number, comment_id, body)

    def delete_tracked(self, comment_id: int) -> None:
        self.client.delete_issue_comment(self.number, comment_id)


class SummaryCommentReporter(Reporter):
    """Posts feedback as a single summary comment on the pull request."""

    channel = Channel.COMMENT

    def __init__(
        self,
        client,
        context: GitHubContext,
        identifier: str,
        comment_mode: CommentMode = CommentMode.UPDATE,
    ):
        super().__init__(client, context, identifier)
        self.comment_mode = comment_mode

    def render(self, items: Iterable[FeedbackItem]) -> str:
        return render_summary(list(items), self.context.blob_url, self.context.run_url)

    def report(self, items: Iterable[FeedbackItem]) -> ReportResult:
        items = list(items)
        logger.info(f"Reporting {len(items)} item(s) as summary comment '{self.identifier}'")
        return self._publish(self.render(items), item_count=len(items))

    def post_summary(self, markdown: str) -> ReportResult:
        return self._publish(markdown, item_count=1)

    def resolve(self) -> ReportResult:
        """Rewrite an existing summary comment to say there are no issues.

        Nothing is created when the identifier has no comment yet, and append
        mode leaves its history alone.
        """
        if self.comment_mode is CommentMode.APPEND or self.context.pull_request is None:
            return ReportResult()
        self.context.validate_write_access()
        store = IssueCommentStore(self.client, self.context.pull_request)
        existing = store.list_tracked()
        if not owned_comments(existing, self.identifier):
            return ReportResult()
        logger.info(f"No items left for summary comment '{self.identifier}'; marking it resolved")
        plan = plan_summary(self.render([]), existing, self.identifier, self.comment_mode)
        self._log_anomalies(plan)
        return execute_plan(plan, store)

    def _publish(self, body: str, item_count: int) -> ReportResult:
        self.context.validate_write_access()
        store = IssueCommentStore(self.client, self.context.require_pull_request())
        plan = plan_summary(body, store.list_tracked(), self.identifier, self.comment_mode, item_count)
        self._log_anomalies(plan)
        return execute_plan(plan, store)

    def cleanup(self) -> ReportResult:
        if self.context.pull_request is None:
            logger.debug("No pull request in context; nothing to clean up")
            return ReportResult()

        self.context.validate_write_access()
        store = IssueCommentStore(self.client, self.context.pull_request)
        plan = plan_cleanup(store.list_tracked(), self.identifier, self.comment_mode)
        return execute_plan(plan, store)
