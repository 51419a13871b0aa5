"""
Overflow and out-of-range routing for the PR Reporter.

Feedback that cannot be shown in its native channel is sent to exactly one
fallback channel: review comments whose line is not in the diff, and check
run annotations beyond the per-request batch limit. Fallback channels run the
same reconciliation under a derived identifier so they never collide with the
primary channel's comments, and they are never given a fallback of their own.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .diff_mapper import index_files, position_for_line, resolved_path
from .models import (
    Channel, CheckRunConclusion, FeedbackItem, OutOfRangeStrategy, OverflowStrategy, PullRequestFile
)
from .utils import chunked


logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
OVERFLOW_SUFFIX = "-overflow"


def overflow_identifier(identifier: str) -> str:
    """Identifier used by the fallback channel of ``identifier``."""
    return f"{identifier}{OVERFLOW_SUFFIX}"


@dataclass
class PlacedItem:
    """A feedback item that maps onto a commentable diff line."""
    item: FeedbackItem
    path: str
    position: int

    @property
    def key(self):
        return (self.path, self.item.line)


@dataclass
class DiffPartition:
    in_range: List[PlacedItem] = field(default_factory=list)
    out_of_range: List[FeedbackItem] = field(default_factory=list)


def partition_by_diff(items: Iterable[FeedbackItem], files: Iterable[PullRequestFile]) -> DiffPartition:
    """Split items into those placeable as review comments and the rest.

    Items whose file is not part of the pull request, whose file has no patch
    (binary or too large), or whose line is not a commentable diff line are
    out of range. This never raises for bad locations.
    """
    files = list(files)
    indexed = index_files(files)
    partition = DiffPartition()

    for item in items:
        path = resolved_path(item, files)
        pr_file = indexed.get(path) if path else None
        if pr_file is None:
            logger.debug(f"{item.path}:{item.line} is not part of the pull request")
            partition.out_of_range.append(item)
            continue
        if not pr_file.patch:
            logger.debug(f"{pr_file.filename} has no patch (binary or too large)")
            partition.out_of_range.append(item)
            continue

        position = position_for_line(item.line, pr_file.patch)
        if position is None:
            logger.debug(f"Line {item.line} of {pr_file.filename} is not in the diff")
            partition.out_of_range.append(item)
        else:
            partition.in_range.append(PlacedItem(item=item, path=pr_file.filename, position=position))

    logger.info(
        f"Placed {len(partition.in_range)} item(s) in the diff, {len(partition.out_of_range)} out of range"
    )
    return partition


@dataclass(frozen=True)
class FallbackRoute:
    """Where items that do not fit the primary channel are sent."""
    channel: Channel
    identifier: str
    name: Optional[str] = None


def route_out_of_range(
    strategy: OutOfRangeStrategy,
    identifier: str,
    name: Optional[str] = None,
) -> Optional[FallbackRoute]:
    """Pick the fallback channel for out-of-range review comments.

    Returns:
        The route, or None when the items are to be dismissed
    """
    if strategy is OutOfRangeStrategy.FALLBACK_TO_COMMENT:
        return FallbackRoute(Channel.COMMENT, overflow_identifier(identifier))
    if strategy is OutOfRangeStrategy.FALLBACK_TO_CHECK_RUN:
        return FallbackRoute(
            Channel.CHECK_RUN,
            overflow_identifier(identifier),
            name=f"{name or identifier} (Overflow)",
        )
    return None


def route_overflow(strategy: OverflowStrategy, identifier: str) -> Optional[FallbackRoute]:
    """Pick the fallback channel for check run annotations beyond the batch limit."""
    if strategy is OverflowStrategy.FALLBACK_TO_COMMENT:
        return FallbackRoute(Channel.COMMENT, overflow_identifier(identifier))
    return None


@dataclass
class Batch:
    """One check run update worth of annotations.

    ``is_final`` marks the update that completes its check run. With
    ``multiple_runs`` every batch belongs to its own run, numbered by
    ``run_index``.
    """
    items: List[FeedbackItem]
    index: int
    total: int
    is_final: bool
    run_index: Optional[int] = None


@dataclass
class BatchPlan:
    batches: List[Batch] = field(default_factory=list)
    overflow: List[FeedbackItem] = field(default_factory=list)

    @property
    def native_items(self) -> List[FeedbackItem]:
        return [item for batch in self.batches for item in batch.items]


def plan_batches(
    items: Sequence[FeedbackItem],
    strategy: OverflowStrategy = OverflowStrategy.TRUNCATE,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> BatchPlan:
    """Split check run annotations into request-sized batches.

    - truncate: every item is posted on one run, in batches; only the last
      batch completes the run
    - multiple_runs: each batch goes to its own run and completes it
    - fallback_to_comment: the first batch is posted natively and the rest is
      returned as overflow for the summary comment channel
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")

    items = list(items)
    plan = BatchPlan()

    if strategy is OverflowStrategy.FALLBACK_TO_COMMENT:
        native, plan.overflow = items[:batch_size], items[batch_size:]
        if native:
            plan.batches.append(Batch(items=native, index=0, total=1, is_final=True))
        if plan.overflow:
            logger.info(f"{len(plan.overflow)} annotation(s) exceed the batch limit and go to the summary comment")
        return plan

    chunks = chunked(items, batch_size)
    total = len(chunks)
    for index, chunk in enumerate(chunks):
        if strategy is OverflowStrategy.MULTIPLE_RUNS:
            plan.batches.append(Batch(items=chunk, index=index, total=total, is_final=True, run_index=index))
        else:
            plan.batches.append(Batch(items=chunk, index=index, total=total, is_final=index == total - 1))
    return plan


def conclusion_for(items: Iterable[FeedbackItem]) -> CheckRunConclusion:
    """Failure if any failure-level item was posted, success otherwise."""
    if any(item.is_failure for item in items):
        return CheckRunConclusion.FAILURE
    return CheckRunConclusion.SUCCESS
