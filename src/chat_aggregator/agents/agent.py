"""
Agent

Generic per-provider interaction state machine. One Agent owns one isolated
browser session and drives it through:

    UNINITIALIZED -> INITIALIZING -> READY -> SUBMITTING -> AWAITING_COMPLETION
        -> EXTRACTING -> SUCCEEDED | FAILED -> CLOSED

Everything provider-specific comes from the AgentDescriptor. close() is
reachable from every state and never raises.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Awaitable, Callable, Optional

from ..browser.driver import PageDriver, SessionFactory
from ..browser.session import SessionStore, is_login_page
from ..config import AggregatorConfig
from ..errors import AgentError, AgentStateError, ClassifiedError, ErrorKind
from ..models import AgentOutcome
from ..retry import RetryExecutor, RetryExhaustedError, RetryPolicy
from .completion import get_completion_detector
from .descriptors import AgentDescriptor
from .resolver import ElementResolver

logger = logging.getLogger(__name__)


class AgentState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    SUBMITTING = "submitting"
    AWAITING_COMPLETION = "awaiting_completion"
    EXTRACTING = "extracting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CLOSED = "closed"


# States in which a submission attempt may start (re-entered on retry)
_SUBMITTABLE = {
    AgentState.READY,
    AgentState.SUBMITTING,
    AgentState.AWAITING_COMPLETION,
    AgentState.EXTRACTING,
}


class Agent:
    """
    One conversational session against one provider front-end.

    Usage:
        >>> agent = Agent(CLAUDE, browser, session_store=SessionStore())
        >>> await agent.initialize()
        >>> outcome = await agent.submit_prompt("2+2?")
        >>> await agent.close()
    """

    def __init__(
        self,
        descriptor: AgentDescriptor,
        engine: SessionFactory,
        session_store: Optional[SessionStore] = None,
        config: Optional[AggregatorConfig] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the agent.

        Args:
            descriptor: Provider description
            engine: Shared engine used to open the isolated session
            session_store: Persisted sessions (no restore/save if None)
            config: Timeout and retry budgets (uses env if None)
            sleep: Async sleep taking seconds (asyncio.sleep if None)
            clock: Monotonic clock in seconds (time.monotonic if None)
        """
        self.descriptor = descriptor
        self.config = config or AggregatorConfig.from_env()
        self._engine = engine
        self._store = session_store
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic
        self._executor = RetryExecutor(self.config.retry_policy(), sleep=self._sleep)

        self._state = AgentState.UNINITIALIZED
        self._driver: Optional[PageDriver] = None
        self._resolver: Optional[ElementResolver] = None
        self._log_extra = {"agent_id": descriptor.id}

    @property
    def id(self) -> str:
        return self.descriptor.id

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def state(self) -> AgentState:
        return self._state

    def _elapsed_ms(self, started: float) -> int:
        return max(0, int((self._clock() - started) * 1000))

    async def initialize(self, check_session: bool = True) -> None:
        """
        Open the session and load the provider's front-end.

        Args:
            check_session: Fail with SESSION_INVALID when the page turns out
                to be a login page (disabled during session setup)

        Raises:
            AgentStateError: If the agent was already initialized
            Exception: The underlying failure; the agent is then FAILED
        """
        if self._state is not AgentState.UNINITIALIZED:
            raise AgentStateError(f"Cannot initialize agent '{self.id}' in state {self._state.value}")

        self._state = AgentState.INITIALIZING
        logger.info("Initializing agent", extra=self._log_extra)

        try:
            handle = None
            if self._store is not None and self._store.exists(self.id):
                handle = self._store.load(self.id)
                logger.debug("Restoring saved session", extra=self._log_extra)

            self._driver = await self._engine.new_session(storage_state=handle)
            self._resolver = ElementResolver(self._driver, agent_id=self.id)

            timeout = self.config.page_load_timeout_ms
            await self._driver.navigate(self.descriptor.url, timeout)
            await self._driver.wait_ready(timeout)

            if check_session:
                url = await self._driver.current_url()
                title = await self._driver.title()
                if is_login_page(url, title, self.descriptor.login_url_patterns):
                    raise AgentError(
                        ErrorKind.SESSION_INVALID,
                        "Session expired, please log in",
                        detail=f"Landed on login page: {url}",
                    )
        except Exception as e:
            self._state = AgentState.FAILED
            logger.error(f"Failed to initialize agent: {e}", extra=self._log_extra)
            raise

        self._state = AgentState.READY
        logger.info("Agent initialized successfully", extra=self._log_extra)

    async def submit_prompt(
        self,
        prompt: str,
        policy: Optional[RetryPolicy] = None,
        response_timeout_ms: Optional[int] = None,
    ) -> AgentOutcome:
        """
        Submit a prompt and collect the answer.

        Submission, completion wait and extraction run end-to-end under the
        retry executor. Failures are returned as error outcomes, not raised.

        Args:
            prompt: Prompt text
            policy: Retry policy (config default if None)
            response_timeout_ms: Completion-wait budget (config default if None)

        Raises:
            AgentStateError: If the agent is not READY
        """
        if self._state is not AgentState.READY:
            raise AgentStateError(f"Cannot submit to agent '{self.id}' in state {self._state.value}")

        budget = response_timeout_ms or self.config.response_timeout_ms
        started = self._clock()

        try:
            result = await self._executor.run(
                lambda: self._submit_once(prompt, budget),
                policy,
                context=self.id,
            )
        except RetryExhaustedError as e:
            self._state = AgentState.FAILED
            return self.error_outcome(
                e.last_error, self._elapsed_ms(started), retry_count=e.retry_count
            )

        self._state = AgentState.SUCCEEDED
        elapsed = self._elapsed_ms(started)
        logger.info(f"Prompt completed successfully in {elapsed}ms", extra=self._log_extra)
        return AgentOutcome.success(
            self.id,
            self.name,
            result.value,
            elapsed_ms=elapsed,
            retry_count=result.retry_count,
        )

    def error_outcome(
        self, error: BaseException, elapsed_ms: int, retry_count: int = 0
    ) -> AgentOutcome:
        """Classify a failure into this agent's error outcome."""
        classified = ClassifiedError.from_exception(error)
        logger.error(
            f"Prompt failed ({classified.kind.value}): {classified.message}",
            extra=self._log_extra,
        )
        return AgentOutcome.failure(
            self.id,
            self.name,
            classified,
            elapsed_ms=elapsed_ms,
            retry_count=retry_count,
        )

    async def _submit_once(self, prompt: str, response_timeout_ms: int) -> str:
        if self._state not in _SUBMITTABLE or self._driver is None:
            raise AgentStateError(f"Agent '{self.id}' lost its session ({self._state.value})")

        locators = self.descriptor.locators
        selector_timeout = self.config.selector_timeout_ms

        self._state = AgentState.SUBMITTING
        input_locator = await self._resolver.resolve(locators.chat_input, selector_timeout)
        await self._driver.click(input_locator)
        await self._driver.fill(input_locator, "")
        await self._driver.fill(input_locator, prompt)

        submit_locator = await self._resolver.resolve(locators.submit_button, selector_timeout)
        await self._driver.click(submit_locator)

        self._state = AgentState.AWAITING_COMPLETION
        await self._await_completion(response_timeout_ms)

        self._state = AgentState.EXTRACTING
        response = await self._extract_response()
        if not response.strip():
            raise AgentError(ErrorKind.UNKNOWN, "Empty response received")
        return response.strip()

    async def _await_completion(self, budget_ms: int) -> int:
        """
        Wait for the response to appear, then for the in-progress indicator
        to go away.

        Returns:
            Number of polls taken

        Raises:
            AgentError: LOCATOR_NOT_FOUND if no response container appears;
                TIMEOUT if still generating when the budget is spent
        """
        settings = self.descriptor.completion
        containers = self.descriptor.locators.response_container

        try:
            await self._resolver.resolve(containers, budget_ms)
        except AgentError as e:
            raise AgentError(
                ErrorKind.LOCATOR_NOT_FOUND,
                f"No response appeared within {budget_ms}ms",
                detail=", ".join(containers),
            ) from e

        detector = get_completion_detector(settings.detector)
        max_polls = max(1, budget_ms // settings.poll_interval_ms)

        if settings.settle_delay_ms:
            await self._sleep(settings.settle_delay_ms / 1000)

        for poll in range(max_polls):
            if not await detector(self._driver, self.descriptor):
                if poll == 0:
                    logger.debug("No in-progress indicator, response already complete", extra=self._log_extra)
                else:
                    logger.debug(f"Streaming completed after {poll} poll(s)", extra=self._log_extra)
                return poll
            await self._sleep(settings.poll_interval_ms / 1000)

        raise AgentError(
            ErrorKind.TIMEOUT,
            f"Response still generating, timed out after {budget_ms}ms",
        )

    async def _extract_response(self) -> str:
        locators = self.descriptor.locators
        selector_timeout = self.config.selector_timeout_ms

        try:
            text_locator = await self._resolver.resolve(locators.response_text, selector_timeout)
        except AgentError:
            text_locator = None

        if text_locator is not None:
            texts = await self._driver.query_all_text(text_locator)
            joined = "\n".join(text.strip() for text in texts if text.strip())
            if joined:
                return joined

        try:
            container_locator = await self._resolver.resolve(
                locators.response_container, selector_timeout
            )
        except AgentError as e:
            if text_locator is not None:
                return ""
            raise AgentError(
                ErrorKind.LOCATOR_NOT_FOUND,
                "No response text found",
                detail=", ".join(locators.response_text + locators.response_container),
            ) from e

        texts = await self._driver.query_all_text(container_locator)
        logger.debug("Used fallback response extraction", extra=self._log_extra)
        return texts[-1] if texts else ""

    async def save_session(self) -> None:
        """
        Persist the session's storage state.

        Raises:
            AgentStateError: If there is no open session or no store
        """
        if self._driver is None or self._store is None:
            raise AgentStateError(f"Agent '{self.id}' has no session to save")

        handle = await self._driver.storage_state()
        self._store.save(self.id, handle)

    async def close(self) -> None:
        """Release the session. Idempotent; never raises."""
        if self._state is AgentState.CLOSED:
            return

        driver, self._driver = self._driver, None
        self._resolver = None
        self._state = AgentState.CLOSED

        if driver is None:
            return
        try:
            await driver.close()
            logger.debug("Agent closed successfully", extra=self._log_extra)
        except Exception as e:
            logger.warning(f"Error closing agent: {e}", extra=self._log_extra)
