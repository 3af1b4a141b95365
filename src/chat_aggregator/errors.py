"""
Error Taxonomy and Classification

Maps raw failures from the page driver, the network, or the remote front-end
into a closed set of error kinds. Each kind carries a recoverability flag that
the retry executor uses to decide whether another attempt is worthwhile.
"""

import re
import traceback
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


class ErrorKind(str, Enum):
    """Classified failure kinds for a single agent."""

    NETWORK = "NETWORK"
    LOCATOR_NOT_FOUND = "LOCATOR_NOT_FOUND"
    TIMEOUT = "TIMEOUT"
    SESSION_INVALID = "SESSION_INVALID"
    UNKNOWN = "UNKNOWN"

    @property
    def recoverable(self) -> bool:
        """A stale session cannot be fixed by repeating the same operation."""
        return self is not ErrorKind.SESSION_INVALID


class AggregatorError(Exception):
    """Base class for all chat aggregator errors."""


class AgentError(AggregatorError):
    """
    A per-agent failure with an explicit classification.

    Raised by the agent and the element resolver when the kind is already
    known, so the classifier does not have to guess from message text.
    """

    def __init__(self, kind: ErrorKind, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.detail = detail


class DriverTimeoutError(AggregatorError):
    """A driver wait exceeded its deadline."""


class AgentStateError(AggregatorError):
    """An agent operation was called from a state that does not allow it."""


class InvalidRequestError(AggregatorError, ValueError):
    """The prompt request is malformed (empty prompt, no agents, unknown id)."""


class NoAgentsAvailableError(AggregatorError):
    """Every selected agent failed to initialize."""

    def __init__(self, message: str = "no agents available", failures=None):
        super().__init__(message)
        # AgentOutcome records for the failed initializations, in request order
        self.failures = list(failures or [])


# Ordered checks: the first match wins, so order is part of the contract.
_PATTERNS: tuple[tuple[ErrorKind, re.Pattern], ...] = (
    (ErrorKind.TIMEOUT, re.compile(r"timeout|timed out", re.IGNORECASE)),
    (
        ErrorKind.LOCATOR_NOT_FOUND,
        re.compile(r"selector|locator|not found|no element", re.IGNORECASE),
    ),
    (
        ErrorKind.NETWORK,
        re.compile(
            r"network|connection|ECONNRESET|ENOTFOUND|ETIMEDOUT|net::ERR|\b50[234]\b",
            re.IGNORECASE,
        ),
    ),
    (
        ErrorKind.SESSION_INVALID,
        re.compile(r"session|log ?in|sign ?in|unauthori[sz]ed", re.IGNORECASE),
    ),
)

_MESSAGES = {
    ErrorKind.TIMEOUT: "Request timed out",
    ErrorKind.LOCATOR_NOT_FOUND: "UI element not found",
    ErrorKind.NETWORK: "Network connectivity issue",
    ErrorKind.SESSION_INVALID: "Session expired or invalid",
}


def classify(error: Union[BaseException, str]) -> ErrorKind:
    """
    Classify a raw failure into an ErrorKind.

    Explicitly classified AgentErrors keep their kind and bare TimeoutErrors
    (e.g. from asyncio.wait_for) are TIMEOUT. Everything else is matched on
    its message text.

    Args:
        error: Exception or raw error text

    Returns:
        The matching ErrorKind, UNKNOWN if nothing matches
    """
    if isinstance(error, AgentError):
        return error.kind
    if isinstance(error, (TimeoutError, DriverTimeoutError)):
        return ErrorKind.TIMEOUT

    if isinstance(error, BaseException):
        text = f"{type(error).__name__}: {error}"
    else:
        text = error

    for kind, pattern in _PATTERNS:
        if pattern.search(text):
            return kind
    return ErrorKind.UNKNOWN


def is_retryable(kind: ErrorKind) -> bool:
    """Whether an error of this kind may succeed on a retry."""
    return kind.recoverable


def is_retryable_error(error: BaseException) -> bool:
    """Retry predicate used by the default retry policy."""
    return is_retryable(classify(error))


class ClassifiedError(BaseModel):
    """User-facing record of a classified failure."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    detail: Optional[str] = None
    recoverable: bool

    @classmethod
    def from_exception(cls, error: BaseException) -> "ClassifiedError":
        """Build the error record for an exception."""
        kind = classify(error)

        if isinstance(error, AgentError):
            return cls(
                kind=kind,
                message=error.message,
                detail=error.detail,
                recoverable=kind.recoverable,
            )

        if kind is ErrorKind.UNKNOWN:
            message = str(error) or type(error).__name__
            detail = "".join(traceback.format_exception(error)).strip() or None
        else:
            message = _MESSAGES[kind]
            detail = str(error) or type(error).__name__

        return cls(kind=kind, message=message, detail=detail, recoverable=kind.recoverable)
