"""
Request and result models.

Pydantic models for one prompt submission and its aggregate outcome:
- PromptRequest: Prompt text, target agents and optional overrides
- AgentOutcome: Result of one agent's run
- AggregateResult: All outcomes for one request, in request order
- SessionSetupResult: Result of setting up one agent's session
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .errors import ClassifiedError, ErrorKind


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class PromptRequest(BaseModel):
    """One user submission.

    Validation Rules:
    - prompt must contain non-whitespace text
    - agent_ids must be non-empty and unique
    - timeout_ms, when given, bounds the response wait of every agent
    - max_retries, when given, replaces the configured retry count
    """

    model_config = ConfigDict(frozen=True)

    prompt: str
    agent_ids: tuple[str, ...]
    timeout_ms: Optional[int] = Field(default=None, gt=0)
    max_retries: Optional[int] = Field(default=None, ge=0)

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("prompt must not be empty")
        return value

    @field_validator("agent_ids")
    @classmethod
    def _agent_ids_unique(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("at least one agent id is required")
        if any(not agent_id.strip() for agent_id in value):
            raise ValueError("agent ids must not be empty")
        if len(set(value)) != len(value):
            raise ValueError("agent ids must be unique")
        return value


class AgentOutcome(BaseModel):
    """Result of one agent's attempt at a prompt.

    Exactly one of response (success) or error (failure) is set.
    """

    model_config = ConfigDict(frozen=True)

    agent_id: str
    name: str
    status: OutcomeStatus
    response: Optional[str] = None
    error: Optional[ClassifiedError] = None
    elapsed_ms: int = Field(ge=0)
    retry_count: int = Field(default=0, ge=0)
    session_valid: bool = True

    @classmethod
    def success(
        cls,
        agent_id: str,
        name: str,
        response: str,
        elapsed_ms: int,
        retry_count: int = 0,
    ) -> "AgentOutcome":
        return cls(
            agent_id=agent_id,
            name=name,
            status=OutcomeStatus.SUCCESS,
            response=response,
            elapsed_ms=elapsed_ms,
            retry_count=retry_count,
            session_valid=True,
        )

    @classmethod
    def failure(
        cls,
        agent_id: str,
        name: str,
        error: ClassifiedError,
        elapsed_ms: int,
        retry_count: int = 0,
    ) -> "AgentOutcome":
        return cls(
            agent_id=agent_id,
            name=name,
            status=OutcomeStatus.ERROR,
            error=error,
            elapsed_ms=elapsed_ms,
            retry_count=retry_count,
            session_valid=error.kind is not ErrorKind.SESSION_INVALID,
        )

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS


class AggregateResult(BaseModel):
    """All agent outcomes for one request.

    Outcomes are in request order, never completion order.
    """

    model_config = ConfigDict(frozen=True)

    prompt: str
    outcomes: tuple[AgentOutcome, ...]
    total_duration_ms: int = Field(ge=0)
    completed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @computed_field
    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @computed_field
    @property
    def error_count(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)

    def outcome_for(self, agent_id: str) -> AgentOutcome:
        for outcome in self.outcomes:
            if outcome.agent_id == agent_id:
                return outcome
        raise KeyError(agent_id)


class SessionSetupResult(BaseModel):
    """Result of preparing one agent's persisted session."""

    model_config = ConfigDict(frozen=True)

    agent_id: str
    name: str
    saved: bool = False
    skipped: bool = False
    error: Optional[ClassifiedError] = None
