"""
Element Resolver

Finds the first locator in an ordered fallback list that resolves on the
page. The caller's total timeout is divided evenly across the candidates, so
a resolution never exceeds the total budget however long the list is.
"""

import logging
from typing import Optional, Sequence

from ..browser.driver import PageDriver
from ..errors import AgentError, ErrorKind

logger = logging.getLogger(__name__)


class ElementResolver:
    """
    Ordered-fallback locator resolution over a PageDriver.

    Usage:
        >>> resolver = ElementResolver(driver)
        >>> selector = await resolver.resolve(["#prompt", "textarea"], 10000)
    """

    def __init__(self, driver: PageDriver, agent_id: Optional[str] = None):
        """
        Initialize the resolver.

        Args:
            driver: Page driver of the session to search
            agent_id: Agent the resolver works for (log context only)
        """
        self._driver = driver
        self._agent_id = agent_id

    async def resolve(self, locators: Sequence[str], total_timeout_ms: float) -> str:
        """
        Resolve the first matching locator.

        Args:
            locators: Candidates in priority order
            total_timeout_ms: Budget shared by all candidates

        Returns:
            The first locator that resolved within its share

        Raises:
            AgentError: LOCATOR_NOT_FOUND with the attempted locators as detail
        """
        attempted = ", ".join(locators)
        if not locators:
            raise AgentError(ErrorKind.LOCATOR_NOT_FOUND, "No locators to resolve")

        share_ms = total_timeout_ms / len(locators)
        log_extra = {"agent_id": self._agent_id}

        for locator in locators:
            try:
                await self._driver.wait_for_locator(locator, share_ms)
            except Exception as e:
                logger.debug(f"Selector not found: {locator} ({e})", extra=log_extra)
                continue

            logger.debug(f"Found element with selector: {locator}", extra=log_extra)
            return locator

        raise AgentError(
            ErrorKind.LOCATOR_NOT_FOUND,
            f"None of the selectors found: {attempted}",
            detail=attempted,
        )
