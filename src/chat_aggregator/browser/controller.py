"""
Browser Controller

Owns the single Playwright browser shared by all agents. The browser is only
used to spawn new isolated contexts, one per agent session; it never holds
per-agent state itself.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Literal, Optional

from dotenv import load_dotenv
from playwright.async_api import (
    Browser,
    Playwright,
    async_playwright,
)

from .driver import PlaywrightDriver, SessionHandle

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


BrowserType = Literal["chromium", "firefox", "webkit"]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


@dataclass
class BrowserConfig:
    """
    Configuration for the shared browser instance.

    Reads from environment variables with sensible defaults.
    """

    # Browser type (chromium is Playwright's Chrome-based browser)
    browser_type: BrowserType = "chromium"

    # Visible by default so the user can log in during session setup
    headless: bool = False

    # Viewport size for every agent context
    viewport_width: int = 1280
    viewport_height: int = 720

    # Slow motion delay in ms (useful for debugging)
    slow_mo: int = 0

    # Default timeout for context operations in ms
    default_timeout: int = 30000

    # Navigation timeout in ms
    navigation_timeout: int = 30000

    user_agent: str = DEFAULT_USER_AGENT

    launch_args: list[str] = field(
        default_factory=lambda: ["--disable-blink-features=AutomationControlled"]
    )

    @classmethod
    def from_env(cls) -> "BrowserConfig":
        """
        Create BrowserConfig from environment variables.

        Environment variables:
            BROWSER_TYPE: chromium, firefox, or webkit (default: chromium)
            BROWSER_HEADLESS: true/false (default: false)
            BROWSER_VIEWPORT_WIDTH: int (default: 1280)
            BROWSER_VIEWPORT_HEIGHT: int (default: 720)
            BROWSER_SLOW_MO: int in ms (default: 0)
            BROWSER_USER_AGENT: str (default: desktop Chrome)
            PAGE_LOAD_TIMEOUT: int in ms (default: 30000)
            NAVIGATION_TIMEOUT: int in ms (default: 30000)
        """
        env_type = os.getenv("BROWSER_TYPE", "chrome").lower()
        browser_type_map = {
            "chrome": "chromium",
            "chromium": "chromium",
            "firefox": "firefox",
            "webkit": "webkit",
            "safari": "webkit",
        }
        browser_type = browser_type_map.get(env_type, "chromium")

        headless_str = os.getenv("BROWSER_HEADLESS", "false").lower()
        headless = headless_str in ("true", "1", "yes")

        return cls(
            browser_type=browser_type,
            headless=headless,
            viewport_width=int(os.getenv("BROWSER_VIEWPORT_WIDTH", "1280")),
            viewport_height=int(os.getenv("BROWSER_VIEWPORT_HEIGHT", "720")),
            slow_mo=int(os.getenv("BROWSER_SLOW_MO", "0")),
            default_timeout=int(os.getenv("PAGE_LOAD_TIMEOUT", "30000")),
            navigation_timeout=int(os.getenv("NAVIGATION_TIMEOUT", "30000")),
            user_agent=os.getenv("BROWSER_USER_AGENT", DEFAULT_USER_AGENT),
        )


class BrowserController:
    """
    Controls the shared Playwright browser instance.

    Implements the SessionFactory protocol: every call to new_session()
    returns a driver over a fresh, isolated context.

    Usage:
        >>> async with BrowserController(BrowserConfig(headless=True)) as browser:
        ...     driver = await browser.new_session()
        ...     await driver.navigate("https://example.com", timeout_ms=30000)
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        """
        Initialize browser controller.

        Args:
            config: Browser configuration (uses env if None)
        """
        self.config = config or BrowserConfig.from_env()

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._launch_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        """Check if browser is initialized."""
        return self._browser is not None

    async def initialize(self) -> None:
        """
        Start Playwright and launch the browser.

        Safe to call concurrently; only the first call launches.
        """
        async with self._launch_lock:
            if self._browser is not None:
                return

            if self._playwright is None:
                self._playwright = await async_playwright().start()
            launcher = self._get_browser_launcher()

            launch_options = {
                "headless": self.config.headless,
                "slow_mo": self.config.slow_mo,
            }
            if self.config.browser_type == "chromium":
                launch_options["args"] = self.config.launch_args

            self._browser = await launcher.launch(**launch_options)

    def _get_browser_launcher(self):
        """Get the appropriate browser launcher based on config."""
        if self._playwright is None:
            raise RuntimeError("Playwright not initialized")

        launchers = {
            "chromium": self._playwright.chromium,
            "firefox": self._playwright.firefox,
            "webkit": self._playwright.webkit,
        }
        return launchers.get(self.config.browser_type, self._playwright.chromium)

    async def new_session(
        self, storage_state: Optional[SessionHandle] = None
    ) -> PlaywrightDriver:
        """
        Create an isolated session.

        Args:
            storage_state: Persisted cookies/local storage to restore

        Returns:
            Driver owning a new context and page
        """
        if self._browser is None:
            await self.initialize()

        context_options = {
            "viewport": {
                "width": self.config.viewport_width,
                "height": self.config.viewport_height,
            },
            "user_agent": self.config.user_agent,
        }
        if storage_state:
            context_options["storage_state"] = storage_state

        context = await self._browser.new_context(**context_options)
        context.set_default_timeout(self.config.default_timeout)
        context.set_default_navigation_timeout(self.config.navigation_timeout)

        page = await context.new_page()
        return PlaywrightDriver(context, page)

    async def close(self) -> None:
        """Close the browser and cleanup resources."""
        if self._browser:
            try:
                await self._browser.close()
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")
            self._browser = None

        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping Playwright: {e}")
            self._playwright = None

    async def __aenter__(self) -> "BrowserController":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


def create_browser(config: Optional[BrowserConfig] = None) -> BrowserController:
    """
    Factory function to create a browser controller.

    Use with async context manager:
        >>> async with create_browser() as browser:
        ...     driver = await browser.new_session()

    Args:
        config: Browser configuration (uses env if None)

    Returns:
        BrowserController instance (not yet initialized)
    """
    return BrowserController(config)
