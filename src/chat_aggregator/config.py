"""
Configuration and Logging Setup

Provides centralized configuration and logging for the chat aggregator.
Reads LOG_LEVEL and the timeout/retry budgets from environment variables.

Usage:
    from chat_aggregator.config import AggregatorConfig, configure_logging

    # Configure at application startup
    configure_logging()
    config = AggregatorConfig.from_env()

    # Get logger in any module
    logger = logging.getLogger(__name__)
"""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .retry import RetryPolicy

# Default configuration
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s: %(message)s"

# Valid log levels
VALID_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

PACKAGE_LOGGER = "chat_aggregator"


@dataclass
class AggregatorConfig:
    """
    Timeout and retry budgets shared by all agents.

    All durations are in milliseconds.
    """

    # Navigation plus network-idle wait during initialization
    page_load_timeout_ms: int = 30000

    # Total budget for resolving one logical element across its fallbacks
    selector_timeout_ms: int = 10000

    # Budget for the completion-wait phase after submitting
    response_timeout_ms: int = 60000

    # Retries after the first attempt (max_attempts = max_retries + 1)
    max_retries: int = 3

    retry_delay_ms: int = 1000
    backoff_factor: float = 1.5
    max_retry_delay_ms: int = 10000

    # Capacity of the in-memory log buffer
    log_buffer_size: int = 1000

    # Optional JSON file with additional agent descriptors
    agents_file: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "AggregatorConfig":
        """
        Create AggregatorConfig from environment variables.

        Environment variables:
            PAGE_LOAD_TIMEOUT: int in ms (default: 30000)
            SELECTOR_TIMEOUT: int in ms (default: 10000)
            RESPONSE_TIMEOUT: int in ms (default: 60000)
            MAX_RETRIES: int (default: 3)
            RETRY_DELAY: int in ms (default: 1000)
            RETRY_BACKOFF: float (default: 1.5)
            MAX_RETRY_DELAY: int in ms (default: 10000)
            LOG_BUFFER_SIZE: int (default: 1000)
            AGENTS_FILE: path to extra agent descriptors (default: unset)
        """
        agents_file = os.getenv("AGENTS_FILE")
        return cls(
            page_load_timeout_ms=int(os.getenv("PAGE_LOAD_TIMEOUT", "30000")),
            selector_timeout_ms=int(os.getenv("SELECTOR_TIMEOUT", "10000")),
            response_timeout_ms=int(os.getenv("RESPONSE_TIMEOUT", "60000")),
            max_retries=int(os.getenv("MAX_RETRIES", "3")),
            retry_delay_ms=int(os.getenv("RETRY_DELAY", "1000")),
            backoff_factor=float(os.getenv("RETRY_BACKOFF", "1.5")),
            max_retry_delay_ms=int(os.getenv("MAX_RETRY_DELAY", "10000")),
            log_buffer_size=int(os.getenv("LOG_BUFFER_SIZE", "1000")),
            agents_file=Path(agents_file) if agents_file else None,
        )

    def retry_policy(self, max_retries: Optional[int] = None) -> RetryPolicy:
        """
        Build the effective retry policy.

        Args:
            max_retries: Request-level override (falls back to config)
        """
        retries = self.max_retries if max_retries is None else max_retries
        return RetryPolicy(
            max_attempts=retries + 1,
            base_delay_ms=self.retry_delay_ms,
            backoff_factor=self.backoff_factor,
            max_delay_ms=self.max_retry_delay_ms,
        )


def get_log_level() -> int:
    """
    Get the log level from LOG_LEVEL environment variable.

    Returns:
        Logging level constant (e.g., logging.INFO)
    """
    level_str = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()

    if level_str not in VALID_LEVELS:
        print(
            f"Warning: Invalid LOG_LEVEL '{level_str}'. "
            f"Valid values: {', '.join(VALID_LEVELS.keys())}. "
            f"Using {DEFAULT_LOG_LEVEL}.",
            file=sys.stderr,
        )
        return VALID_LEVELS[DEFAULT_LOG_LEVEL]

    return VALID_LEVELS[level_str]


def configure_logging(
    level: Optional[int] = None,
    verbose: bool = False,
) -> None:
    """
    Configure logging for the chat aggregator.

    Should be called once at application startup. Output goes to stderr so
    stdout stays reserved for the serialized result.

    Args:
        level: Override log level (default: from LOG_LEVEL env var)
        verbose: Use detailed format with timestamps (default: simple format)
    """
    if level is None:
        level = get_log_level()

    log_format = LOG_FORMAT if verbose else LOG_FORMAT_SIMPLE

    logging.basicConfig(
        level=level,
        format=log_format,
        stream=sys.stderr,
        force=True,
    )

    logging.getLogger(PACKAGE_LOGGER).setLevel(level)

    # Quiet noisy third-party loggers in non-debug mode
    if level > logging.DEBUG:
        logging.getLogger("playwright").setLevel(logging.WARNING)
        logging.getLogger("asyncio").setLevel(logging.WARNING)
