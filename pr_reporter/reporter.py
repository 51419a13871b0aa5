"""
Reporter base class and plan execution for the PR Reporter.

Every channel reporter computes a ReconciliationPlan from a snapshot of its
tracked comments and then runs the plan here, one remote call at a time. The
first failing call aborts the rest of the plan; operations already performed
are not rolled back.
"""

import logging
from abc import ABC, abstractmethod
from typing import Hashable, Iterable, List, Optional, Protocol

from . import comment_marker
from .context import GitHubContext
from .models import Channel, FeedbackItem, ReportResult, TrackedComment
from .reconciler import Create, Delete, ReconciliationPlan, Skip, StrikethroughUpdate, UpdateMerge


logger = logging.getLogger(__name__)


class TrackedCommentStore(Protocol):
    """Remote storage of the comments one channel tracks."""

    def list_tracked(self) -> List[TrackedComment]:
        ...

    def create_tracked(self, body: str, key: Optional[Hashable] = None) -> TrackedComment:
        ...

    def update_tracked(self, comment_id: int, body: str) -> TrackedComment:
        ...

    def delete_tracked(self, comment_id: int) -> None:
        ...


def execute_plan(plan: ReconciliationPlan, store: TrackedCommentStore) -> ReportResult:
    """Run a plan's operations in order against a store.

    Returns:
        Counts of what was done, plus the id and URL of the last comment
        created, updated or confirmed unchanged
    """
    result = ReportResult()
    last: Optional[TrackedComment] = None

    for op in plan.operations:
        if isinstance(op, Create):
            last = store.create_tracked(op.body, op.key)
            result.posted += op.item_count
        elif isinstance(op, UpdateMerge):
            last = store.update_tracked(op.target_id, op.body)
            result.updated += op.item_count
        elif isinstance(op, StrikethroughUpdate):
            store.update_tracked(op.comment_id, op.body)
            result.updated += 1
        elif isinstance(op, Delete):
            store.delete_tracked(op.comment_id)
            result.deleted += 1
        elif isinstance(op, Skip):
            logger.debug(f"Skipping {op.key if op.key is not None else 'comment'}: {op.reason}")
            result.skipped += op.item_count
            if op.comment_id is not None and last is None:
                result.comment_id = op.comment_id

    if last is not None:
        result.comment_id = last.id
        result.comment_url = last.url

    logger.info(
        f"Executed plan: {result.posted} posted, {result.updated} updated, "
        f"{result.deleted} deleted, {result.skipped} skipped"
    )
    return result


class Reporter(ABC):
    """Posts feedback to one presentation channel."""

    channel: Channel

    def __init__(self, client, context: GitHubContext, identifier: str):
        comment_marker.validate_identifier(identifier)
        self.client = client
        self.context = context
        self.identifier = identifier

    @abstractmethod
    def report(self, items: Iterable[FeedbackItem]) -> ReportResult:
        """Post feedback, reconciling with what earlier runs posted."""

    @abstractmethod
    def post_summary(self, markdown: str) -> ReportResult:
        """Post free-form markdown to the channel's summary location."""

    @abstractmethod
    def cleanup(self) -> ReportResult:
        """Remove (or strike through) what earlier runs left behind."""

    def _log_anomalies(self, plan: ReconciliationPlan) -> None:
        if plan.anomalies:
            logger.warning(
                f"{self.channel.value} '{self.identifier}': {len(plan.anomalies)} location(s) "
                f"carry more than one tracked comment"
            )
