"""
Check run channel for the PR Reporter.

Feedback is posted as check run annotations, which GitHub renders inline in
the "Files changed" view and which can point at any line of any file. The
check run is found again on re-runs of the same workflow attempt through its
``external_id``.
"""

import logging
from typing import Iterable, List, Optional

from .comment_reporter import SummaryCommentReporter
from .context import GitHubContext
from .models import (
    Channel, CheckRunConclusion, CheckRunInfo, CheckRunStatus, FeedbackItem, OverflowStrategy, ReportResult
)
from .rendering import render_check_summary, to_check_annotation
from .reporter import Reporter
from .router import DEFAULT_BATCH_SIZE, Batch, conclusion_for, plan_batches, route_overflow


logger = logging.getLogger(__name__)

IN_PROGRESS_SUMMARY = "Running..."


class CheckRunReporter(Reporter):
    """Posts feedback as annotations on a GitHub check run."""

    channel = Channel.CHECK_RUN

    def __init__(
        self,
        client,
        context: GitHubContext,
        identifier: str,
        name: Optional[str] = None,
        overflow: OverflowStrategy = OverflowStrategy.TRUNCATE,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        super().__init__(client, context, identifier)
        self.name = name or identifier
        self.overflow = overflow
        self.batch_size = batch_size
        self._summary: Optional[str] = None

        route = route_overflow(overflow, identifier)
        self.overflow_reporter: Optional[SummaryCommentReporter] = (
            SummaryCommentReporter(client, context, route.identifier) if route else None
        )

    @property
    def external_id(self) -> str:
        """``<identifier>[-<run_id>]-<run_attempt>``, stable across re-runs of one attempt."""
        parts = [self.identifier]
        if self.context.run_id is not None:
            parts.append(str(self.context.run_id))
        parts.append(str(self.context.run_attempt))
        return "-".join(parts)

    def _find_or_create(self, name: str, external_id: str) -> CheckRunInfo:
        existing = self.client.find_check_run(self.context.commit_sha, external_id)
        if existing is not None:
            return existing
        return self.client.create_check_run(
            name=name,
            head_sha=self.context.commit_sha,
            external_id=external_id,
            output={"title": name, "summary": IN_PROGRESS_SUMMARY},
        )

    def _post_batch(
        self, run: CheckRunInfo, title: str, batch: Batch, summary: str, conclusion: CheckRunConclusion
    ) -> CheckRunInfo:
        output = {
            "title": title,
            "summary": summary,
            "annotations": [to_check_annotation(item) for item in batch.items],
        }
        if batch.is_final:
            return self.client.update_check_run(
                run.id, output, status=CheckRunStatus.COMPLETED, conclusion=conclusion.value
            )
        return self.client.update_check_run(run.id, output)

    def report(self, items: Iterable[FeedbackItem]) -> ReportResult:
        self.context.validate_write_access()
        items = list(items)
        plan = plan_batches(items, self.overflow, self.batch_size)
        logger.info(
            f"Reporting {len(items)} item(s) to check run '{self.name}' in {len(plan.batches)} batch(es)"
        )

        if self.overflow is OverflowStrategy.MULTIPLE_RUNS and len(plan.batches) > 1:
            result = self._report_multiple_runs(plan.batches)
        else:
            result = self._report_single_run(items, plan.batches)

        if self.overflow_reporter is not None:
            if plan.overflow:
                result = result.merge(self.overflow_reporter.report(plan.overflow))
            else:
                result = result.merge(self.overflow_reporter.resolve())
        return result

    def _report_single_run(self, items: List[FeedbackItem], batches: List[Batch]) -> ReportResult:
        run = self._find_or_create(self.name, self.external_id)
        conclusion = conclusion_for(items)
        summary = self._summary or render_check_summary(items)

        if not batches:
            run = self.client.update_check_run(
                run.id,
                {"title": self.name, "summary": summary},
                status=CheckRunStatus.COMPLETED,
                conclusion=conclusion.value,
            )

        posted = 0
        for batch in batches:
            run = self._post_batch(run, self.name, batch, summary, conclusion)
            posted += len(batch.items)

        return ReportResult(posted=posted, check_run_id=run.id, check_run_url=run.url)

    def _report_multiple_runs(self, batches: List[Batch]) -> ReportResult:
        result = ReportResult()
        for batch in batches:
            number = batch.run_index + 1
            name = f"{self.name} ({number}/{batch.total})"
            run = self._find_or_create(name, f"{self.external_id}-{number}")
            summary = self._summary or render_check_summary(batch.items)
            run = self._post_batch(run, name, batch, summary, conclusion_for(batch.items))
            result = result.merge(ReportResult(posted=len(batch.items), check_run_id=run.id, check_run_url=run.url))
        return result

    def post_summary(self, markdown: str) -> ReportResult:
        """Set the check run summary.

        Updates the check run right away when it already exists, otherwise the
        text is kept and used by the next report or complete.
        """
        self.context.validate_write_access()
        self._summary = markdown
        existing = self.client.find_check_run(self.context.commit_sha, self.external_id)
        if existing is None:
            logger.debug("No check run yet; summary stored for the next update")
            return ReportResult()

        run = self.client.update_check_run(existing.id, {"title": self.name, "summary": markdown})
        return ReportResult(check_run_id=run.id, check_run_url=run.url)

    def complete(self, conclusion: CheckRunConclusion) -> ReportResult:
        """Complete the check run with an explicit conclusion."""
        self.context.validate_write_access()
        run = self._find_or_create(self.name, self.external_id)
        run = self.client.update_check_run(
            run.id,
            {"title": self.name, "summary": self._summary or "Completed"},
            status=CheckRunStatus.COMPLETED,
            conclusion=conclusion.value,
        )
        return ReportResult(check_run_id=run.id, check_run_url=run.url)

    def cleanup(self) -> ReportResult:
        """Annotations cannot be deleted, so only the overflow comment is cleaned up."""
        logger.debug("Check run annotations cannot be removed; cleanup is a no-op")
        if self.overflow_reporter is not None:
            return self.overflow_reporter.cleanup()
        return ReportResult()
