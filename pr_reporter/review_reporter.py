"""
Line comment channel for the PR Reporter.

Feedback on lines that are part of the pull request diff is posted as review
comments anchored by diff position. At most one tracked comment is kept per
(file, line): new feedback for a line that already has one is merged into it
as a new section. Feedback that cannot be placed goes to the configured
fallback channel.
"""

import logging
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

from .check_run_reporter import CheckRunReporter
from .comment_reporter import SummaryCommentReporter
from .context import GitHubContext
from .models import Channel, FeedbackItem, OutOfRangeStrategy, ReportResult, TrackedComment
from .reconciler import KeyedChannel, plan_cleanup, plan_keyed
from .rendering import render_line_comment
from .reporter import Reporter, execute_plan
from .router import partition_by_diff, route_out_of_range


logger = logging.getLogger(__name__)


def review_comment_key(comment: TrackedComment) -> Optional[Tuple[str, int]]:
    """Tracking key of a review comment; None for outdated comments with no line."""
    if not comment.path or comment.line is None:
        return None
    return (comment.path, comment.line)


class ReviewCommentStore:
    """Pull request review comments as a tracked comment store.

    New comments need a diff position, so the store is given the positions
    computed for this pass keyed by (path, line).
    """

    def __init__(self, client, number: int, commit_sha: str, positions: Dict[Tuple[str, int], int]):
        self.client = client
        self.number = number
        self.commit_sha = commit_sha
        self.positions = positions

    def list_tracked(self) -> List[TrackedComment]:
        return self.client.list_review_comments(self.number)

    def create_tracked(self, body: str, key: Optional[Hashable] = None) -> TrackedComment:
        path, _ = key
        return self.client.create_review_comment(
            self.number, body, self.commit_sha, path, self.positions[key]
        )

    def update_tracked(self, comment_id: int, body: str) -> TrackedComment:
        return self.client.update_review_comment(self.number, comment_id, body)

    def delete_tracked(self, comment_id: int) -> None:
        self.client.delete_review_comment(self.number, comment_id)


class ReviewCommentReporter(Reporter):
    """Posts feedback as review comments on the lines it refers to."""

    channel = Channel.REVIEW

    def __init__(
        self,
        client,
        context: GitHubContext,
        identifier: str,
        out_of_range: OutOfRangeStrategy = OutOfRangeStrategy.FALLBACK_TO_COMMENT,
        name: Optional[str] = None,
    ):
        super().__init__(client, context, identifier)
        self.out_of_range = out_of_range
        self.fallback: Optional[Reporter] = None

        # Fallback reporters are built without fallbacks of their own
        route = route_out_of_range(out_of_range, identifier, name)
        if route is not None and route.channel is Channel.COMMENT:
            self.fallback = SummaryCommentReporter(client, context, route.identifier)
        elif route is not None and route.channel is Channel.CHECK_RUN:
            self.fallback = CheckRunReporter(client, context, route.identifier, name=route.name)

    @property
    def keyed_channel(self) -> KeyedChannel:
        return KeyedChannel(
            identifier=self.identifier,
            key_for_comment=review_comment_key,
            render=render_line_comment,
        )

    def report(self, items: Iterable[FeedbackItem]) -> ReportResult:
        self.context.validate_write_access()
        number = self.context.require_pull_request()
        items = list(items)

        files = self.client.get_pull_request_files(number)
        partition = partition_by_diff(items, files)

        positions: Dict[Tuple[str, int], int] = {}
        for placed in partition.in_range:
            positions.setdefault(placed.key, placed.position)

        store = ReviewCommentStore(self.client, number, self.context.commit_sha, positions)
        plan = plan_keyed(
            [(placed.key, placed.item) for placed in partition.in_range],
            store.list_tracked(),
            self.keyed_channel,
        )
        self._log_anomalies(plan)
        result = execute_plan(plan, store)

        if partition.out_of_range:
            if self.fallback is None:
                logger.info(f"Dismissing {len(partition.out_of_range)} item(s) outside the diff")
                result.dismissed += len(partition.out_of_range)
            else:
                logger.info(
                    f"Routing {len(partition.out_of_range)} item(s) outside the diff to "
                    f"{self.fallback.channel.value} '{self.fallback.identifier}'"
                )
                result = result.merge(self.fallback.report(partition.out_of_range))
        elif isinstance(self.fallback, SummaryCommentReporter):
            result = result.merge(self.fallback.resolve())
        return result

    def post_summary(self, markdown: str) -> ReportResult:
        """Review comments have no summary location; use the fallback summary comment if there is one."""
        if isinstance(self.fallback, SummaryCommentReporter):
            return self.fallback.post_summary(markdown)
        logger.info("No summary comment configured for review comments; summary not posted")
        return ReportResult()

    def cleanup(self) -> ReportResult:
        if self.context.pull_request is None:
            logger.debug("No pull request in context; nothing to clean up")
            return ReportResult()

        self.context.validate_write_access()
        store = ReviewCommentStore(self.client, self.context.pull_request, self.context.commit_sha, {})
        plan = plan_cleanup(store.list_tracked(), self.identifier)
        result = execute_plan(plan, store)

        if self.fallback is not None:
            result = result.merge(self.fallback.cleanup())
        return result
