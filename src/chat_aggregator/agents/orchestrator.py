"""
Agent Orchestrator

Fans one prompt out to several agents and fans their outcomes back in:

1. initialize every selected agent concurrently
2. submit the prompt concurrently to the agents that came up
3. merge initialization failures and submission outcomes in request order
4. close every agent concurrently, whatever happened

Per-agent failures never escape run(); only malformed input and "no agent
initialized" are fatal.
"""

import asyncio
import logging
import time
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Iterable, Mapping, Optional, Sequence, TypeVar

from ..browser.driver import SessionFactory
from ..browser.session import SessionStore
from ..config import PACKAGE_LOGGER, AggregatorConfig
from ..errors import (
    AgentError,
    ClassifiedError,
    ErrorKind,
    InvalidRequestError,
    NoAgentsAvailableError,
)
from ..log_buffer import LogBuffer
from ..models import AgentOutcome, AggregateResult, PromptRequest, SessionSetupResult
from .agent import Agent
from .descriptors import AgentDescriptor, build_registry, load_descriptors

logger = logging.getLogger(__name__)

T = TypeVar("T")

LoginWaiter = Callable[[AgentDescriptor], Awaitable[Any]]


@dataclass
class Settled(Generic[T]):
    """Value-or-error record of one concurrent unit of work."""

    value: Optional[T] = None
    error: Optional[BaseException] = None
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class AgentOrchestrator:
    """
    Runs prompts across several agents in parallel.

    Usage:
        >>> async with BrowserController() as browser:
        ...     orchestrator = AgentOrchestrator(browser, session_store=SessionStore())
        ...     result = await orchestrator.run(
        ...         PromptRequest(prompt="2+2?", agent_ids=("chatgpt", "claude"))
        ...     )
    """

    def __init__(
        self,
        engine: SessionFactory,
        descriptors: Optional[Iterable[AgentDescriptor]] = None,
        session_store: Optional[SessionStore] = None,
        config: Optional[AggregatorConfig] = None,
        log_buffer: Optional[LogBuffer] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            engine: Shared engine handle used by every agent to open sessions
            descriptors: Agents to offer (built-ins plus AGENTS_FILE if None)
            session_store: Persisted sessions
            config: Timeout and retry budgets (uses env if None)
            log_buffer: Captures this orchestrator's logs during runs
            sleep: Async sleep taking seconds (asyncio.sleep if None)
            clock: Monotonic clock in seconds (time.monotonic if None)
        """
        self.config = config or AggregatorConfig.from_env()
        self.log_buffer = log_buffer
        self._engine = engine
        self._store = session_store
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic

        if descriptors is None:
            extra = load_descriptors(self.config.agents_file) if self.config.agents_file else None
            self._registry: Mapping[str, AgentDescriptor] = build_registry(extra)
        else:
            self._registry = build_registry(descriptors, include_builtins=False)

    def list_agents(self) -> list[AgentDescriptor]:
        """All agents this orchestrator can dispatch to."""
        return list(self._registry.values())

    def _create_agent(self, descriptor: AgentDescriptor) -> Agent:
        return Agent(
            descriptor,
            self._engine,
            session_store=self._store,
            config=self.config,
            sleep=self._sleep,
            clock=self._clock,
        )

    def _select(self, agent_ids: Sequence[str]) -> list[AgentDescriptor]:
        if not agent_ids:
            raise InvalidRequestError("at least one agent id is required")
        if len(set(agent_ids)) != len(agent_ids):
            raise InvalidRequestError("agent ids must be unique")

        unknown = [agent_id for agent_id in agent_ids if agent_id not in self._registry]
        if unknown:
            raise InvalidRequestError(
                f"Unknown agent id(s): {', '.join(unknown)}. "
                f"Available: {', '.join(self._registry)}"
            )
        return [self._registry[agent_id] for agent_id in agent_ids]

    async def _settle(self, awaitable: Awaitable[T]) -> Settled[T]:
        started = self._clock()
        try:
            value = await awaitable
        except Exception as e:
            return Settled(error=e, elapsed_ms=self._elapsed_ms(started))
        return Settled(value=value, elapsed_ms=self._elapsed_ms(started))

    async def _fan_out(self, awaitables: Sequence[Awaitable[T]]) -> list[Settled[T]]:
        """Run one task per awaitable, join them all, keep input order."""
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(self._settle(awaitable)) for awaitable in awaitables]
        return [task.result() for task in tasks]

    def _elapsed_ms(self, started: float) -> int:
        return max(0, int((self._clock() - started) * 1000))

    async def _close_all(self, agents: Sequence[Agent]) -> None:
        results = await self._fan_out([agent.close() for agent in agents])
        for agent, settled in zip(agents, results):
            if not settled.ok:
                logger.warning(
                    f"Cleanup failed: {settled.error}",
                    extra={"agent_id": agent.id},
                )

    def _capture_logs(self):
        if self.log_buffer is None:
            return nullcontext()
        return self.log_buffer.attached(PACKAGE_LOGGER)

    async def run(self, request: PromptRequest) -> AggregateResult:
        """
        Dispatch a prompt to every requested agent.

        Args:
            request: Prompt and target agents

        Returns:
            One outcome per requested agent, in request order

        Raises:
            InvalidRequestError: Unknown or duplicate agent ids
            NoAgentsAvailableError: No agent initialized successfully
        """
        descriptors = self._select(request.agent_ids)

        with self._capture_logs():
            agents = [self._create_agent(descriptor) for descriptor in descriptors]
            logger.info(f"Dispatching prompt to {len(agents)} agent(s): {', '.join(request.agent_ids)}")

            try:
                started = self._clock()

                # Phase 1: initialize
                init_results = await self._fan_out([agent.initialize() for agent in agents])

                outcomes: list[Optional[AgentOutcome]] = [None] * len(agents)
                ready: list[int] = []
                for index, (agent, settled) in enumerate(zip(agents, init_results)):
                    if settled.ok:
                        ready.append(index)
                    else:
                        outcomes[index] = agent.error_outcome(settled.error, settled.elapsed_ms)

                if not ready:
                    logger.error("No agents available: every agent failed to initialize")
                    raise NoAgentsAvailableError("no agents available", failures=outcomes)

                # Phase 2: submit
                policy = self.config.retry_policy(request.max_retries)
                submit_results = await self._fan_out(
                    [
                        agents[index].submit_prompt(
                            request.prompt,
                            policy=policy,
                            response_timeout_ms=request.timeout_ms,
                        )
                        for index in ready
                    ]
                )

                # Phase 3: merge in request order
                for index, settled in zip(ready, submit_results):
                    if settled.ok:
                        outcomes[index] = settled.value
                    else:
                        outcomes[index] = agents[index].error_outcome(
                            settled.error, settled.elapsed_ms
                        )

                total_ms = self._elapsed_ms(started)
                result = AggregateResult(
                    prompt=request.prompt,
                    outcomes=tuple(outcomes),
                    total_duration_ms=total_ms,
                )
                logger.info(
                    f"Prompt finished in {total_ms}ms: "
                    f"{result.success_count} succeeded, {result.error_count} failed"
                )
            finally:
                # Phase 4: cleanup
                await self._close_all(agents)

        return result

    async def setup_sessions(
        self,
        agent_ids: Optional[Sequence[str]] = None,
        login_waiter: Optional[LoginWaiter] = None,
        force: bool = False,
    ) -> list[SessionSetupResult]:
        """
        Open each agent's front-end, let the user log in, and save the session.

        Best-effort and independent per agent: one agent's failure is
        recorded in its result and never fails the call.

        Args:
            agent_ids: Agents to set up (all registered agents if None)
            login_waiter: Awaited per agent before saving (e.g. manual login
                prompt); returning False records the agent as cancelled
            force: Also redo agents that already have a saved session

        Raises:
            InvalidRequestError: Unknown or duplicate agent ids
        """
        if self._store is None:
            raise InvalidRequestError("a session store is required to set up sessions")

        ids = list(agent_ids) if agent_ids is not None else list(self._registry)
        descriptors = self._select(ids)

        with self._capture_logs():
            results: list[Optional[SessionSetupResult]] = [None] * len(descriptors)
            pending: list[int] = []
            for index, descriptor in enumerate(descriptors):
                if not force and self._store.exists(descriptor.id):
                    logger.info("Session already exists, skipping", extra={"agent_id": descriptor.id})
                    results[index] = SessionSetupResult(
                        agent_id=descriptor.id, name=descriptor.name, skipped=True
                    )
                else:
                    pending.append(index)

            agents = [self._create_agent(descriptors[index]) for index in pending]
            try:
                settled = await self._fan_out(
                    [self._setup_one(agent, login_waiter) for agent in agents]
                )
            finally:
                await self._close_all(agents)

            for index, agent, outcome in zip(pending, agents, settled):
                if outcome.ok:
                    results[index] = SessionSetupResult(
                        agent_id=agent.id, name=agent.name, saved=True
                    )
                else:
                    logger.error(f"Session setup failed: {outcome.error}", extra={"agent_id": agent.id})
                    results[index] = SessionSetupResult(
                        agent_id=agent.id,
                        name=agent.name,
                        error=ClassifiedError.from_exception(outcome.error),
                    )

        return results

    async def _setup_one(self, agent: Agent, login_waiter: Optional[LoginWaiter]) -> None:
        await agent.initialize(check_session=False)
        # A waiter returning False means the user gave up on this login
        if login_waiter is not None and await login_waiter(agent.descriptor) is False:
            raise AgentError(ErrorKind.SESSION_INVALID, "Login cancelled, session not saved")
        await agent.save_session()


def create_orchestrator(
    engine: SessionFactory,
    session_store: Optional[SessionStore] = None,
    config: Optional[AggregatorConfig] = None,
    log_buffer: Optional[LogBuffer] = None,
) -> AgentOrchestrator:
    """
    Factory function to create an orchestrator over the configured agents.

    Args:
        engine: Shared engine handle (usually a BrowserController)
        session_store: Persisted sessions (file store from env if None)
        config: Timeout and retry budgets (uses env if None)
        log_buffer: Optional log capture

    Returns:
        Configured AgentOrchestrator instance
    """
    return AgentOrchestrator(
        engine,
        session_store=session_store or SessionStore(),
        config=config,
        log_buffer=log_buffer,
    )
