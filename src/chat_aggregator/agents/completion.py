"""
Completion Detectors

Pluggable predicates answering "is the agent still generating?". Descriptors
name the detector they need, so provider-specific streaming quirks stay in
configuration instead of code paths.

Detectors are registered with the ``completion_detector`` decorator:

    >>> @completion_detector("my_detector")
    ... async def my_detector(driver, descriptor) -> bool:
    ...     return await driver.is_present(".typing")
"""

import logging
from typing import TYPE_CHECKING, Awaitable, Callable

if TYPE_CHECKING:
    from ..browser.driver import PageDriver
    from .descriptors import AgentDescriptor

logger = logging.getLogger(__name__)

CompletionDetector = Callable[["PageDriver", "AgentDescriptor"], Awaitable[bool]]

# Registry of detectors by name
_DETECTOR_REGISTRY: dict[str, CompletionDetector] = {}


def completion_detector(name: str):
    """Decorator registering a completion detector under a name."""

    def decorator(func: CompletionDetector) -> CompletionDetector:
        _DETECTOR_REGISTRY[name] = func
        return func

    return decorator


def get_completion_detector(name: str) -> CompletionDetector:
    """
    Look up a registered detector.

    Raises:
        KeyError: If no detector has that name
    """
    try:
        return _DETECTOR_REGISTRY[name]
    except KeyError:
        raise KeyError(
            f"Unknown completion detector '{name}'. "
            f"Registered: {', '.join(sorted(_DETECTOR_REGISTRY))}"
        ) from None


def list_completion_detectors() -> list[str]:
    return sorted(_DETECTOR_REGISTRY)


@completion_detector("indicator")
async def in_progress_indicator(driver: "PageDriver", descriptor: "AgentDescriptor") -> bool:
    """Generating while any in-progress locator (stop button, spinner) is present."""
    for locator in descriptor.locators.in_progress:
        if await driver.is_present(locator):
            logger.debug(
                f"In-progress indicator present: {locator}",
                extra={"agent_id": descriptor.id},
            )
            return True
    return False


@completion_detector("none")
async def never_generating(driver: "PageDriver", descriptor: "AgentDescriptor") -> bool:
    """For front-ends without any streaming indicator."""
    return False
