"""
Configuration management for the GitLab AI Code Reviewer.

This module handles environment variables, validation and default settings
for the GitLab connection, review behavior, concurrency and logging.
"""

import logging
import logging.handlers
from dataclasses import dataclass, field
from typing import Dict, Any
from enum import Enum

from .models import OutsideDiffPolicy
from .validators import (
    validate_required_string, validate_positive_int,
    validate_gitlab_token_format, validate_url_format,
    ensure_positive_or_default
)
from .env_reader import get_env_str, get_env_int, get_env_bool, get_env_enum


class LogLevel(Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass
class GitLabConfig:
    """Configuration for GitLab integration."""
    token: str
    url: str = "https://gitlab.com"
    timeout: int = 30
    max_retries: int = 3
    retry_delay_min: int = 1
    retry_delay_max: int = 10

    def __post_init__(self):
        """Validate GitLab configuration."""
        validate_required_string(self.token, "GitLab token")
        if not validate_gitlab_token_format(self.token):
            raise ValueError("Invalid GitLab token format")
        if not validate_url_format(self.url):
            raise ValueError(f"Invalid GitLab URL: {self.url}")
        self.url = self.url.rstrip('/')
        validate_positive_int(self.timeout, "timeout")
        validate_positive_int(self.max_retries, "max_retries")

    @property
    def api_base_url(self) -> str:
        return f"{self.url}/api/v4"


@dataclass
class ReviewConfig:
    """Configuration for line reconciliation and comment formatting."""
    outside_diff_policy: OutsideDiffPolicy = OutsideDiffPolicy.WARN
    drop_context_line_feedback: bool = False
    include_deep_links: bool = True
    comment_prefix: str = "[AI]"


@dataclass
class PerformanceConfig:
    """Configuration for concurrent comment submission."""
    max_concurrent_comments: int = 3

    def __post_init__(self):
        """Validate performance configuration."""
        self.max_concurrent_comments = ensure_positive_or_default(self.max_concurrent_comments, 1)


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
    enable_file_logging: bool = False
    log_file_path: str = "gitlab_reviewer.log"
    max_log_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 3


@dataclass
class Config:
    """Main configuration class that combines all configuration sections."""
    gitlab: GitLabConfig
    review: ReviewConfig = field(default_factory=ReviewConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_environment(cls) -> 'Config':
        """Create configuration from environment variables."""
        token = get_env_str("GITLAB_TOKEN", "", "GITLAB_PRIVATE_TOKEN")
        if not token:
            raise ValueError("GITLAB_TOKEN environment variable is required")

        gitlab_config = GitLabConfig(
            token=token,
            url=get_env_str("GITLAB_URL", "https://gitlab.com", "CI_SERVER_URL"),
            timeout=get_env_int("GITLAB_TIMEOUT", 30),
            max_retries=get_env_int("GITLAB_MAX_RETRIES", 3)
        )

        review_config = ReviewConfig(
            outside_diff_policy=get_env_enum(
                "OUTSIDE_DIFF_POLICY", OutsideDiffPolicy, OutsideDiffPolicy.WARN
            ),
            drop_context_line_feedback=get_env_bool("DROP_CONTEXT_LINE_FEEDBACK", False),
            include_deep_links=get_env_bool("INCLUDE_DEEP_LINKS", True),
            comment_prefix=get_env_str("COMMENT_PREFIX", "[AI]")
        )

        performance_config = PerformanceConfig(
            max_concurrent_comments=get_env_int("MAX_CONCURRENT_COMMENTS", 3)
        )

        logging_config = LoggingConfig(
            level=get_env_enum("LOG_LEVEL", LogLevel, LogLevel.INFO),
            enable_file_logging=get_env_bool("ENABLE_FILE_LOGGING", False),
            log_file_path=get_env_str("LOG_FILE_PATH", "gitlab_reviewer.log")
        )

        return cls(
            gitlab=gitlab_config,
            review=review_config,
            performance=performance_config,
            logging=logging_config
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary (without the token)."""
        return {
            "gitlab": {
                "url": self.gitlab.url,
                "timeout": self.gitlab.timeout,
                "max_retries": self.gitlab.max_retries,
            },
            "review": {
                "outside_diff_policy": self.review.outside_diff_policy.value,
                "drop_context_line_feedback": self.review.drop_context_line_feedback,
                "include_deep_links": self.review.include_deep_links,
                "comment_prefix": self.review.comment_prefix,
            },
            "performance": {
                "max_concurrent_comments": self.performance.max_concurrent_comments,
            },
            "logging": {
                "level": self.logging.level.value,
                "enable_file_logging": self.logging.enable_file_logging,
            }
        }


def setup_logging(logging_config: LoggingConfig) -> None:
    """Configure the root logger from a LoggingConfig."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, logging_config.level.value))

    formatter = logging.Formatter(logging_config.format)
    handlers = [logging.StreamHandler()]
    if logging_config.enable_file_logging:
        handlers.append(logging.handlers.RotatingFileHandler(
            logging_config.log_file_path,
            maxBytes=logging_config.max_log_size,
            backupCount=logging_config.backup_count
        ))

    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
