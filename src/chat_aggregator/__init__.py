"""
Chat Aggregator

Sends one prompt to several chat front-ends at once through isolated browser
sessions, retries recoverable failures, and reports every agent's outcome.
"""

from .agents import Agent, AgentDescriptor, AgentOrchestrator, ElementResolver, list_agents
from .errors import (
    AgentError,
    AggregatorError,
    ClassifiedError,
    ErrorKind,
    InvalidRequestError,
    NoAgentsAvailableError,
    classify,
    is_retryable,
)
from .models import AgentOutcome, AggregateResult, OutcomeStatus, PromptRequest
from .retry import RetryExecutor, RetryPolicy

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "AgentDescriptor",
    "AgentOrchestrator",
    "ElementResolver",
    "list_agents",
    "AgentError",
    "AggregatorError",
    "ClassifiedError",
    "ErrorKind",
    "InvalidRequestError",
    "NoAgentsAvailableError",
    "classify",
    "is_retryable",
    "AgentOutcome",
    "AggregateResult",
    "OutcomeStatus",
    "PromptRequest",
    "RetryExecutor",
    "RetryPolicy",
]
