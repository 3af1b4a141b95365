"""
Page Driver

The narrow page-automation surface the agents are allowed to use, and its
Playwright implementation. Agents never touch Playwright objects directly;
every wait carries an explicit deadline and Playwright timeouts are
translated into DriverTimeoutError.
"""

import logging
from typing import Any, Optional, Protocol

from playwright.async_api import BrowserContext, Page, TimeoutError as PlaywrightTimeout

from ..errors import DriverTimeoutError

logger = logging.getLogger(__name__)

# Opaque persisted authentication state (Playwright storage_state dict)
SessionHandle = dict[str, Any]


class PageDriver(Protocol):
    """Capability surface of one isolated browser session."""

    async def navigate(self, url: str, timeout_ms: float) -> None: ...

    async def wait_ready(self, timeout_ms: float) -> None: ...

    async def wait_for_locator(self, locator: str, timeout_ms: float) -> None: ...

    async def is_present(self, locator: str) -> bool: ...

    async def click(self, locator: str) -> None: ...

    async def fill(self, locator: str, text: str) -> None: ...

    async def query_all_text(self, locator: str) -> list[str]: ...

    async def current_url(self) -> str: ...

    async def title(self) -> str: ...

    async def storage_state(self) -> SessionHandle: ...

    async def close(self) -> None: ...


class SessionFactory(Protocol):
    """Shared engine handle that spawns isolated sessions."""

    async def new_session(self, storage_state: Optional[SessionHandle] = None) -> PageDriver: ...


class PlaywrightDriver:
    """
    PageDriver backed by one Playwright context and page.

    The driver owns its context: closing the driver closes both.
    """

    def __init__(self, context: BrowserContext, page: Page):
        self._context = context
        self._page = page

    async def navigate(self, url: str, timeout_ms: float) -> None:
        try:
            await self._page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightTimeout as e:
            raise DriverTimeoutError(
                f"Timeout navigating to {url} after {timeout_ms:.0f}ms"
            ) from e

    async def wait_ready(self, timeout_ms: float) -> None:
        try:
            await self._page.wait_for_load_state("networkidle", timeout=timeout_ms)
        except PlaywrightTimeout as e:
            raise DriverTimeoutError(
                f"Timeout waiting for networkidle state after {timeout_ms:.0f}ms"
            ) from e

    async def wait_for_locator(self, locator: str, timeout_ms: float) -> None:
        try:
            await self._page.locator(locator).first.wait_for(
                state="visible", timeout=timeout_ms
            )
        except PlaywrightTimeout as e:
            raise DriverTimeoutError(
                f"Timeout waiting for '{locator}' to be visible after {timeout_ms:.0f}ms"
            ) from e

    async def is_present(self, locator: str) -> bool:
        return await self._page.locator(locator).count() > 0

    async def click(self, locator: str) -> None:
        await self._page.locator(locator).first.click()

    async def fill(self, locator: str, text: str) -> None:
        await self._page.locator(locator).first.fill(text)

    async def query_all_text(self, locator: str) -> list[str]:
        texts = await self._page.locator(locator).all_text_contents()
        return [text or "" for text in texts]

    async def current_url(self) -> str:
        return self._page.url

    async def title(self) -> str:
        return await self._page.title()

    async def storage_state(self) -> SessionHandle:
        return await self._context.storage_state()

    async def close(self) -> None:
        try:
            await self._page.close()
        finally:
            await self._context.close()
