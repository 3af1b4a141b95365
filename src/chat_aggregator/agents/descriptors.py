"""
Agent Descriptors

Static, data-only description of each supported chat front-end: where it
lives, which selectors expose its input box, send button, answer and
"still generating" marker, and how completion is detected. One generic Agent
is parameterized by a descriptor; there are no per-provider subclasses.

Selectors in each list are ordered fallbacks, most specific first.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..browser.session import DEFAULT_LOGIN_PATTERNS
from .completion import get_completion_detector

logger = logging.getLogger(__name__)


class LocatorSet(BaseModel):
    """Ordered locator fallbacks for each logical UI affordance."""

    model_config = ConfigDict(frozen=True)

    chat_input: tuple[str, ...] = Field(min_length=1)
    submit_button: tuple[str, ...] = Field(min_length=1)
    response_container: tuple[str, ...] = Field(min_length=1)
    response_text: tuple[str, ...] = Field(min_length=1)
    in_progress: tuple[str, ...] = ()


class CompletionSettings(BaseModel):
    """How the end of a streamed answer is detected.

    The number of polls is derived from the response timeout budget
    (budget // poll_interval_ms), never configured separately.
    """

    model_config = ConfigDict(frozen=True)

    detector: str = "indicator"
    settle_delay_ms: int = Field(default=2000, ge=0)
    poll_interval_ms: int = Field(default=1000, gt=0)

    @field_validator("detector")
    @classmethod
    def _detector_registered(cls, value: str) -> str:
        try:
            get_completion_detector(value)
        except KeyError as e:
            raise ValueError(e.args[0]) from None
        return value


class AgentDescriptor(BaseModel):
    """Identity, endpoint and UI description of one provider."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    url: str
    locators: LocatorSet
    completion: CompletionSettings = CompletionSettings()
    login_url_patterns: tuple[str, ...] = DEFAULT_LOGIN_PATTERNS


CHATGPT = AgentDescriptor(
    id="chatgpt",
    name="ChatGPT",
    url="https://chat.openai.com",
    locators=LocatorSet(
        chat_input=(
            "#prompt-textarea",
            '[data-id="root"] textarea',
            'textarea[placeholder*="Message"]',
            'textarea[data-testid="textbox"]',
        ),
        submit_button=(
            '[data-testid="send-button"]',
            'button[aria-label="Send prompt"]',
            'button[data-testid="send-button"]',
            'button:has(svg[data-icon="send"])',
        ),
        response_container=(
            '[data-message-author-role="assistant"]',
            '.group:has([data-message-author-role="assistant"])',
            '[data-testid="conversation-turn-3"]',
        ),
        response_text=(
            '[data-message-author-role="assistant"]:last-child .markdown p',
            '[data-message-author-role="assistant"]:last-child p',
            '[data-message-author-role="assistant"]:last-child div',
        ),
        in_progress=(
            'button[aria-label="Stop generating"]',
            'button[data-testid="stop-button"]',
        ),
    ),
    completion=CompletionSettings(settle_delay_ms=1000),
)

CLAUDE = AgentDescriptor(
    id="claude",
    name="Claude",
    url="https://claude.ai",
    locators=LocatorSet(
        chat_input=(
            'div[contenteditable="true"]',
            'textarea[placeholder*="Talk to Claude"]',
            '[data-testid="chat-input"]',
        ),
        submit_button=(
            'button[aria-label="Send Message"]',
            'button:has(svg[data-icon="send"])',
            '[data-testid="send-button"]',
        ),
        response_container=(
            ".font-claude-message",
            '[data-testid="user-input"] ~ div .prose',
            ".prose",
        ),
        response_text=(
            ".font-claude-message:last-child",
            ".prose:last-child",
        ),
        in_progress=(
            'button[aria-label="Stop"]',
            'button[data-testid="stop-button"]',
        ),
    ),
)

GEMINI = AgentDescriptor(
    id="gemini",
    name="Gemini",
    url="https://gemini.google.com",
    locators=LocatorSet(
        chat_input=(
            'rich-textarea[placeholder*="Enter a prompt"]',
            'textarea[placeholder*="Enter a prompt"]',
            '[data-testid="input-textarea"]',
        ),
        submit_button=(
            'button[aria-label="Send message"]',
            'button[data-testid="send-button"]',
            'button:has(svg[data-icon="send"])',
        ),
        response_container=(
            ".model-response-text",
            "[data-response-container]",
            '[data-testid="response"]',
        ),
        response_text=(
            ".model-response-text:last-child",
            "[data-response-container]:last-child .markdown p",
        ),
        in_progress=(
            'button[aria-label="Stop generating"]',
            'button[data-testid="stop-button"]',
            ".loading",
            ".generating",
        ),
    ),
)

PERPLEXITY = AgentDescriptor(
    id="perplexity",
    name="Perplexity",
    url="https://www.perplexity.ai",
    locators=LocatorSet(
        chat_input=(
            'textarea[placeholder*="Ask anything"]',
            'textarea[placeholder*="Follow up"]',
            '[data-testid="search-input"]',
        ),
        submit_button=(
            'button[aria-label="Submit"]',
            'button:has(svg[data-icon="arrow-right"])',
            '[data-testid="submit-button"]',
        ),
        response_container=(
            ".prose",
            '[data-testid="answer"]',
            '[data-testid="response"]',
        ),
        response_text=(
            ".prose:last-child",
            '[data-testid="answer"]:last-child',
        ),
        in_progress=(
            'button[aria-label="Stop"]',
            'button[data-testid="stop-button"]',
            ".loading-dots",
            ".generating",
        ),
    ),
)

BUILTIN_DESCRIPTORS: tuple[AgentDescriptor, ...] = (CHATGPT, CLAUDE, GEMINI, PERPLEXITY)


def load_descriptors(path: Path) -> list[AgentDescriptor]:
    """
    Load additional descriptors from a JSON file.

    The file holds either a list of descriptor objects or an object with an
    "agents" list.

    Raises:
        pydantic.ValidationError: If a descriptor is malformed
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("agents", [])
    descriptors = [AgentDescriptor.model_validate(item) for item in data]
    logger.debug(f"Loaded {len(descriptors)} agent descriptor(s) from {path}")
    return descriptors


def build_registry(
    extra: Optional[Iterable[AgentDescriptor]] = None,
    include_builtins: bool = True,
) -> dict[str, AgentDescriptor]:
    """
    Build the id -> descriptor registry.

    Extra descriptors override built-ins with the same id; registry order is
    built-ins first, then new ids in the order given.
    """
    registry: dict[str, AgentDescriptor] = {}
    if include_builtins:
        for descriptor in BUILTIN_DESCRIPTORS:
            registry[descriptor.id] = descriptor
    for descriptor in extra or ():
        registry[descriptor.id] = descriptor
    return registry


def list_agents() -> list[AgentDescriptor]:
    """The built-in descriptors."""
    return list(BUILTIN_DESCRIPTORS)
