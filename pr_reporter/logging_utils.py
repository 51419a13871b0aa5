"""
Logging setup for the PR Reporter.

Workflow logs are public on many repositories, so every handler installed here
carries a filter that scrubs the configured token and anything shaped like a
GitHub token before a record is written.
"""

import logging
from logging.handlers import RotatingFileHandler
from typing import Iterable, Optional

from .config import LoggingConfig
from .utils import redact_secrets


class TokenRedactingFilter(logging.Filter):
    """Replace secrets in log records with ``[REDACTED]``."""

    def __init__(self, secrets: Optional[Iterable[str]] = None):
        super().__init__()
        self.secrets = [s for s in (secrets or []) if s]

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message, self.secrets)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def configure_logging(config: LoggingConfig, secrets: Optional[Iterable[str]] = None) -> logging.Logger:
    """Configure the root logger from a LoggingConfig.

    Args:
        config: Logging configuration
        secrets: Literal values to redact, typically the GitHub token

    Returns:
        The configured root logger
    """
    root = logging.getLogger()
    root.setLevel(config.level.numeric)

    for handler in list(root.handlers):
        if getattr(handler, "_pr_reporter", False):
            root.removeHandler(handler)
            handler.close()

    redacting_filter = TokenRedactingFilter(secrets)
    formatter = logging.Formatter(config.format)

    handlers = [logging.StreamHandler()]
    if config.enable_file_logging:
        handlers.append(RotatingFileHandler(
            config.log_file_path,
            maxBytes=config.max_log_size,
            backupCount=config.backup_count,
        ))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(redacting_filter)
        handler._pr_reporter = True
        root.addHandler(handler)

    # Keep third-party request logging out of INFO output
    logging.getLogger("urllib3").setLevel(max(config.level.numeric, logging.WARNING))
    logging.getLogger("github").setLevel(max(config.level.numeric, logging.WARNING))

    return root
