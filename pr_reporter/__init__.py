"""
PR Reporter Package

Posts build errors, lint warnings and notices onto GitHub pull requests as
check run annotations, a summary comment or line review comments, and keeps
them reconciled across repeated runs of the same job.
"""

__version__ = "1.0.0"
__description__ = "Idempotent pull request feedback for GitHub Actions"

# Importing the package must not pull in PyGithub or requests; the pure
# modules (diff mapping, markers, reconciliation) are usable on their own.
# Public names are resolved lazily on first access.

__all__ = [
    # Configuration and context
    'Config', 'GitHubContext', 'ContextError',
    # Data models
    'FeedbackItem', 'Severity', 'Channel', 'CommentMode', 'OutOfRangeStrategy',
    'OverflowStrategy', 'ReportResult', 'TrackedComment', 'PullRequestFile',
    # Engine
    'ReconciliationPlan', 'plan_keyed', 'plan_summary', 'plan_cleanup',
    # Reporters and clients
    'Reporter', 'CheckRunReporter', 'SummaryCommentReporter', 'ReviewCommentReporter',
    'create_reporter', 'GitHubClient', 'GitHubClientError',
]

# Lazy import map: attribute -> (module_path, attr_name)
_lazy_exports = {
    'Config': ('pr_reporter.config', 'Config'),
    'GitHubContext': ('pr_reporter.context', 'GitHubContext'),
    'ContextError': ('pr_reporter.context', 'ContextError'),
    # Models
    'FeedbackItem': ('pr_reporter.models', 'FeedbackItem'),
    'Severity': ('pr_reporter.models', 'Severity'),
    'Channel': ('pr_reporter.models', 'Channel'),
    'CommentMode': ('pr_reporter.models', 'CommentMode'),
    'OutOfRangeStrategy': ('pr_reporter.models', 'OutOfRangeStrategy'),
    'OverflowStrategy': ('pr_reporter.models', 'OverflowStrategy'),
    'ReportResult': ('pr_reporter.models', 'ReportResult'),
    'TrackedComment': ('pr_reporter.models', 'TrackedComment'),
    'PullRequestFile': ('pr_reporter.models', 'PullRequestFile'),
    # Engine
    'ReconciliationPlan': ('pr_reporter.reconciler', 'ReconciliationPlan'),
    'plan_keyed': ('pr_reporter.reconciler', 'plan_keyed'),
    'plan_summary': ('pr_reporter.reconciler', 'plan_summary'),
    'plan_cleanup': ('pr_reporter.reconciler', 'plan_cleanup'),
    # Reporters and clients
    'Reporter': ('pr_reporter.reporter', 'Reporter'),
    'CheckRunReporter': ('pr_reporter.check_run_reporter', 'CheckRunReporter'),
    'SummaryCommentReporter': ('pr_reporter.comment_reporter', 'SummaryCommentReporter'),
    'ReviewCommentReporter': ('pr_reporter.review_reporter', 'ReviewCommentReporter'),
    'create_reporter': ('pr_reporter.factory', 'create_reporter'),
    'GitHubClient': ('pr_reporter.github_client', 'GitHubClient'),
    'GitHubClientError': ('pr_reporter.github_client', 'GitHubClientError'),
}


def __getattr__(name):
    target = _lazy_exports.get(name)
    if not target:
        raise AttributeError(f"module 'pr_reporter' has no attribute '{name}'")
    module_path, attr_name = target
    try:
        module = __import__(module_path, fromlist=[attr_name])
        value = getattr(module, attr_name)
        globals()[name] = value  # cache for future access
        return value
    except ImportError as e:
        raise ImportError(f"Failed to import '{name}' from '{module_path}': {e}")
