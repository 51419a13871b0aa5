"""
Configuration management for the PR Reporter.

This module handles all configuration aspects including environment variables,
validation, and default settings.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from enum import Enum

from .models import Channel, CommentMode, OutOfRangeStrategy, OverflowStrategy
from .validators import (
    validate_required_string, validate_positive_int, validate_range,
    validate_github_token_format, validate_identifier, validate_url
)
from .env_reader import get_env_str, get_env_int, get_env_bool, get_env_enum


DEFAULT_IDENTIFIER = "pr-reporter"
MAX_BATCH_SIZE = 50


class LogLevel(Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"

    @property
    def numeric(self) -> int:
        return getattr(logging, self.value)


@dataclass
class GitHubConfig:
    """Configuration for GitHub integration."""
    token: str
    api_base_url: str = "https://api.github.com"
    timeout: int = 30
    max_retries: int = 3
    retry_delay_min: int = 4
    retry_delay_max: int = 10

    def __post_init__(self):
        """Validate GitHub configuration."""
        validate_required_string(self.token, "GitHub token")
        if not validate_github_token_format(self.token):
            raise ValueError("Invalid GitHub token format")
        validate_url(self.api_base_url, "GitHub API URL")
        self.api_base_url = self.api_base_url.rstrip("/")
        validate_positive_int(self.timeout, "timeout")
        validate_positive_int(self.max_retries, "max_retries")
        if self.retry_delay_min < 0 or self.retry_delay_max < self.retry_delay_min:
            raise ValueError("retry delays must satisfy 0 <= retry_delay_min <= retry_delay_max")


@dataclass
class ReporterConfig:
    """Configuration for how feedback is reported."""
    identifier: str = DEFAULT_IDENTIFIER
    channel: Channel = Channel.CHECK_RUN
    check_name: Optional[str] = None
    comment_mode: CommentMode = CommentMode.UPDATE
    out_of_range: OutOfRangeStrategy = OutOfRangeStrategy.FALLBACK_TO_COMMENT
    overflow: OverflowStrategy = OverflowStrategy.TRUNCATE
    batch_size: int = MAX_BATCH_SIZE

    def __post_init__(self):
        """Validate reporter configuration."""
        validate_identifier(self.identifier, "identifier")
        # GitHub rejects check run updates carrying more than 50 annotations
        validate_range(self.batch_size, 1, MAX_BATCH_SIZE, "batch_size")
        if not self.check_name:
            self.check_name = self.identifier


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    enable_file_logging: bool = False
    log_file_path: str = "pr_reporter.log"
    max_log_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 3


@dataclass
class Config:
    """Main configuration class that combines all configuration sections."""
    github: GitHubConfig
    reporter: ReporterConfig = field(default_factory=ReporterConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_environment(cls) -> 'Config':
        """Create configuration from environment variables.

        Reporter settings are read from ``PR_REPORTER_*`` first and fall back
        to the ``INPUT_*`` variables GitHub Actions sets for action inputs.
        """
        github_token = get_env_str("GITHUB_TOKEN", "", "INPUT_GITHUB_TOKEN", "INPUT_TOKEN")
        if not github_token:
            raise ValueError("GITHUB_TOKEN environment variable is required")

        github_config = GitHubConfig(
            token=github_token,
            api_base_url=get_env_str("GITHUB_API_URL", "https://api.github.com"),
            timeout=get_env_int("GITHUB_TIMEOUT", 30),
            max_retries=get_env_int("GITHUB_MAX_RETRIES", 3)
        )

        reporter_config = ReporterConfig(
            identifier=get_env_str("PR_REPORTER_IDENTIFIER", DEFAULT_IDENTIFIER, "INPUT_IDENTIFIER"),
            channel=get_env_enum("PR_REPORTER_CHANNEL", Channel, Channel.CHECK_RUN, "INPUT_CHANNEL"),
            check_name=get_env_str("PR_REPORTER_CHECK_NAME", "", "INPUT_NAME") or None,
            comment_mode=get_env_enum(
                "PR_REPORTER_COMMENT_MODE", CommentMode, CommentMode.UPDATE, "INPUT_COMMENT_MODE"
            ),
            out_of_range=get_env_enum(
                "PR_REPORTER_OUT_OF_RANGE", OutOfRangeStrategy, OutOfRangeStrategy.FALLBACK_TO_COMMENT,
                "INPUT_OUT_OF_RANGE"
            ),
            overflow=get_env_enum(
                "PR_REPORTER_OVERFLOW", OverflowStrategy, OverflowStrategy.TRUNCATE, "INPUT_OVERFLOW"
            ),
            batch_size=get_env_int("PR_REPORTER_BATCH_SIZE", MAX_BATCH_SIZE)
        )

        logging_config = LoggingConfig(
            level=get_env_enum("LOG_LEVEL", LogLevel, LogLevel.INFO),
            enable_file_logging=get_env_bool("ENABLE_FILE_LOGGING", False)
        )

        return cls(
            github=github_config,
            reporter=reporter_config,
            logging=logging_config
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary (the token is never included)."""
        return {
            "github": {
                "api_base_url": self.github.api_base_url,
                "timeout": self.github.timeout,
                "max_retries": self.github.max_retries,
            },
            "reporter": {
                "identifier": self.reporter.identifier,
                "channel": self.reporter.channel.value,
                "check_name": self.reporter.check_name,
                "comment_mode": self.reporter.comment_mode.value,
                "out_of_range": self.reporter.out_of_range.value,
                "overflow": self.reporter.overflow.value,
                "batch_size": self.reporter.batch_size,
            },
            "logging": {
                "level": self.logging.level.value,
                "enable_file_logging": self.logging.enable_file_logging,
            }
        }
