"""
Command line entry point for the PR Reporter.

    python -m pr_reporter report findings.json
    python -m pr_reporter summary summary.md
    python -m pr_reporter cleanup

Settings come from the environment (see ``Config.from_environment``); a few
can be overridden with flags. The result of each command is printed as JSON.
"""

import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from .config import Config
from .context import ContextError, GitHubContext
from .factory import create_reporter
from .github_client import GitHubClient, GitHubClientError
from .logging_utils import configure_logging
from .models import Channel, CommentMode, FeedbackItem, OutOfRangeStrategy, OverflowStrategy


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_REPORT_ERROR = 1
EXIT_CONFIG_ERROR = 2


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def load_items(path: str) -> List[FeedbackItem]:
    """Load feedback items from a JSON file ("-" for stdin).

    The file holds either a list of items or an object with an ``items`` (or
    ``annotations``) list.
    """
    try:
        data: Any = json.loads(_read_text(path))
    except json.JSONDecodeError as e:
        raise ValueError(f"{path} is not valid JSON: {e}")

    if isinstance(data, dict):
        data = data.get("items", data.get("annotations"))
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of feedback items")
    return [FeedbackItem.from_dict(entry) for entry in data]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pr-reporter",
        description="Post feedback to a GitHub pull request, idempotently across runs.",
    )
    parser.add_argument("--identifier", help="Identifier tying comments to this tool (PR_REPORTER_IDENTIFIER)")
    parser.add_argument("--channel", choices=[c.value for c in Channel], help="Presentation channel")
    parser.add_argument("--name", help="Check run name (PR_REPORTER_CHECK_NAME)")
    parser.add_argument("--comment-mode", choices=[m.value for m in CommentMode])
    parser.add_argument("--out-of-range", choices=[s.value for s in OutOfRangeStrategy])
    parser.add_argument("--overflow", choices=[s.value for s in OverflowStrategy])

    subparsers = parser.add_subparsers(dest="command", required=True)

    report = subparsers.add_parser("report", help="Post feedback items from a JSON file")
    report.add_argument("items", help="JSON file with feedback items, or - for stdin")

    summary = subparsers.add_parser("summary", help="Post a markdown summary")
    summary.add_argument("markdown", help="Markdown file, or - for stdin")

    subparsers.add_parser("cleanup", help="Remove what earlier runs posted")
    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Apply command line flags on top of the environment configuration."""
    settings = config.reporter
    if args.identifier:
        # A check name that only defaulted to the old identifier follows the new one
        if settings.check_name == settings.identifier:
            settings.check_name = args.identifier
        settings.identifier = args.identifier
    if args.channel:
        settings.channel = Channel(args.channel)
    if args.name:
        settings.check_name = args.name
    if args.comment_mode:
        settings.comment_mode = CommentMode(args.comment_mode)
    if args.out_of_range:
        settings.out_of_range = OutOfRangeStrategy(args.out_of_range)
    if args.overflow:
        settings.overflow = OverflowStrategy(args.overflow)
    settings.__post_init__()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = apply_overrides(Config.from_environment(), args)
        configure_logging(config.logging, secrets=[config.github.token])
        context = GitHubContext.from_environment()
    except (ValueError, ContextError) as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    client = GitHubClient(config.github, context.repository)
    try:
        reporter = create_reporter(config, context, client)
        if args.command == "report":
            result = reporter.report(load_items(args.items))
        elif args.command == "summary":
            result = reporter.post_summary(_read_text(args.markdown))
        else:
            result = reporter.cleanup()
    except (ValueError, ContextError, OSError) as e:
        logger.error(f"Cannot {args.command}: {e}")
        return EXIT_CONFIG_ERROR
    except GitHubClientError as e:
        logger.error(f"GitHub API error during {args.command}: {e}")
        return EXIT_REPORT_ERROR
    finally:
        client.close()

    print(json.dumps(result.to_dict(), indent=2))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
