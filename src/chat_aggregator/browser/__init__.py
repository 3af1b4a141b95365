"""
Browser Automation Module

Provides the shared Playwright browser, the page driver surface used by the
agents, and per-agent session persistence.
"""

from .controller import BrowserController, BrowserConfig, create_browser
from .driver import PageDriver, PlaywrightDriver, SessionFactory, SessionHandle
from .session import SessionConfig, SessionStore, is_login_page

__all__ = [
    "BrowserController",
    "BrowserConfig",
    "create_browser",
    "PageDriver",
    "PlaywrightDriver",
    "SessionFactory",
    "SessionHandle",
    "SessionConfig",
    "SessionStore",
    "is_login_page",
]
