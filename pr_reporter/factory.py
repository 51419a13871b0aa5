"""
Builds the reporter selected by configuration.
"""

import logging
from typing import Optional

from .check_run_reporter import CheckRunReporter
from .comment_reporter import SummaryCommentReporter
from .config import Config
from .context import GitHubContext
from .github_client import GitHubClient
from .models import Channel
from .reporter import Reporter
from .review_reporter import ReviewCommentReporter


logger = logging.getLogger(__name__)


def create_reporter(config: Config, context: GitHubContext, client: Optional[GitHubClient] = None) -> Reporter:
    """Create the reporter for ``config.reporter.channel``.

    Args:
        config: Loaded configuration
        context: GitHub Actions context
        client: GitHub client to use; one is created from ``config.github`` if omitted

    Returns:
        A ready to use reporter
    """
    if client is None:
        client = GitHubClient(config.github, context.repository)

    settings = config.reporter
    logger.info(f"Using {settings.channel.value} reporter '{settings.identifier}'")

    if settings.channel is Channel.CHECK_RUN:
        return CheckRunReporter(
            client, context, settings.identifier,
            name=settings.check_name,
            overflow=settings.overflow,
            batch_size=settings.batch_size,
        )
    if settings.channel is Channel.COMMENT:
        return SummaryCommentReporter(
            client, context, settings.identifier,
            comment_mode=settings.comment_mode,
        )
    if settings.channel is Channel.REVIEW:
        return ReviewCommentReporter(
            client, context, settings.identifier,
            out_of_range=settings.out_of_range,
            name=settings.check_name,
        )
    raise ValueError(f"Unsupported channel: {settings.channel}")
