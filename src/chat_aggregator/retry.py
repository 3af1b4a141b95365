"""
Retry Executor

Runs an async operation with a bounded number of attempts and capped
exponential backoff between them. Whether a failure is worth another attempt
is decided by a pluggable predicate, by default the error classifier's
recoverability flag.

The sleep function is injected so the delay schedule can be checked against a
fake clock.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from .errors import AggregatorError, is_retryable_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry configuration.

    Attributes:
        max_attempts: Total attempts including the first one
        base_delay_ms: Delay before the second attempt
        backoff_factor: Multiplier applied for every further attempt
        max_delay_ms: Upper bound for any single delay
        retry_predicate: Decides whether a failure may be retried
    """

    max_attempts: int = 4
    base_delay_ms: float = 1000
    backoff_factor: float = 1.5
    max_delay_ms: float = 10000
    retry_predicate: Callable[[BaseException], bool] = is_retryable_error

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("delays must not be negative")

    def delay_for(self, attempt: int) -> float:
        """Delay in ms before the given zero-based attempt."""
        if attempt == 0:
            return 0
        return min(
            self.base_delay_ms * self.backoff_factor ** (attempt - 1),
            self.max_delay_ms,
        )


@dataclass
class RetryResult(Generic[T]):
    """Successful outcome of a retried operation."""

    value: T
    attempts: int
    delays_ms: list[float] = field(default_factory=list)

    @property
    def retry_count(self) -> int:
        return self.attempts - 1


class RetryExhaustedError(AggregatorError):
    """
    Raised when the executor gives up.

    The last underlying error is available as ``last_error`` (and as
    ``__cause__``), together with the number of attempts actually made.
    """

    def __init__(self, last_error: BaseException, attempts: int, delays_ms: list[float]):
        super().__init__(f"Operation failed after {attempts} attempt(s): {last_error}")
        self.last_error = last_error
        self.attempts = attempts
        self.delays_ms = delays_ms

    @property
    def retry_count(self) -> int:
        return self.attempts - 1


class RetryExecutor:
    """
    Executes operations under a RetryPolicy.

    Usage:
        >>> executor = RetryExecutor()
        >>> result = await executor.run(lambda: submit(page), RetryPolicy(max_attempts=3))
        >>> result.value, result.attempts
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: Optional[SleepFn] = None,
    ):
        """
        Initialize the executor.

        Args:
            policy: Default policy for run() calls without one
            sleep: Async sleep taking seconds (asyncio.sleep if None)
        """
        self.policy = policy or RetryPolicy()
        self._sleep = sleep or asyncio.sleep

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: Optional[RetryPolicy] = None,
        context: Optional[str] = None,
    ) -> RetryResult[T]:
        """
        Run an operation until it succeeds or the policy says stop.

        Args:
            operation: Zero-argument callable returning a fresh awaitable
            policy: Retry policy (executor default if None)
            context: Label used in log messages (e.g. agent id)

        Returns:
            RetryResult with the value and the attempt count

        Raises:
            RetryExhaustedError: If the last attempt failed
        """
        policy = policy or self.policy
        label = f"[{context}] " if context else ""
        delays: list[float] = []

        attempt = 0
        while True:
            delay = policy.delay_for(attempt)
            delays.append(delay)
            if delay > 0:
                logger.debug(
                    f"{label}Retry attempt {attempt + 1}/{policy.max_attempts} in {delay:.0f}ms"
                )
                await self._sleep(delay / 1000)

            try:
                value = await operation()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                attempts = attempt + 1
                if attempts >= policy.max_attempts or not policy.retry_predicate(e):
                    logger.error(f"{label}Operation failed after {attempts} attempt(s): {e}")
                    raise RetryExhaustedError(e, attempts, delays) from e
                logger.warning(f"{label}Attempt {attempts} failed, retrying: {e}")
                attempt += 1
                continue

            if attempt > 0:
                logger.info(f"{label}Operation succeeded after {attempt} retries")
            return RetryResult(value=value, attempts=attempt + 1, delays_ms=delays)
