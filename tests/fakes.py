"""
In-memory stand-ins for the browser side of the aggregator.

FakeEngine plays the shared browser: it hands out FakeDrivers that bind to a
scripted FakeSite on navigate. Every wait is charged to a FakeClock, so
timing assertions are exact and tests never really sleep.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from chat_aggregator.agents import AgentDescriptor, CompletionSettings, LocatorSet
from chat_aggregator.errors import DriverTimeoutError


INPUT = "#input"
SEND = "#send"
STOP = "#stop"
MESSAGE = ".message"
MESSAGE_TEXT = ".message:last-child p"


class FakeClock:
    """Monotonic clock in seconds whose sleep only advances time."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


@dataclass
class FakeSite:
    """Scripted behaviour of one chat front-end."""

    url: str
    title: str = "Chat"
    # Where navigation ends up (e.g. a login redirect)
    landing_url: Optional[str] = None
    # locator -> element texts present once the page has loaded
    elements: dict[str, list[str]] = field(
        default_factory=lambda: {INPUT: [""], SEND: ["Send"]}
    )
    # locator -> element texts added when the send button is clicked
    response: dict[str, list[str]] = field(
        default_factory=lambda: {MESSAGE: ["2+2?", "4"], MESSAGE_TEXT: ["4"]}
    )
    navigate_error: Optional[BaseException] = None
    # locator -> errors raised by successive clicks, consumed in order
    click_errors: dict[str, list[BaseException]] = field(default_factory=dict)
    # Delay between the send click and the response elements showing up
    response_delay_ms: float = 0
    # How many in-progress checks report "still generating" after a send
    generating_checks: int = 0
    click_cost_ms: float = 0
    close_error: Optional[BaseException] = None


class FakeDriver:
    """PageDriver over a FakeSite."""

    def __init__(self, clock: FakeClock, sites: dict[str, FakeSite], storage_state=None):
        self.clock = clock
        self.sites = sites
        self.storage_state_in = storage_state
        self.site: Optional[FakeSite] = None
        self.url = "about:blank"
        self.elements: dict[str, list[str]] = {}
        self.filled: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.locator_waits: list[tuple[str, float]] = []
        self.presence_checks: list[str] = []
        self.generating_left = 0
        self.response_at: Optional[float] = None
        self.close_count = 0

    async def navigate(self, url: str, timeout_ms: float) -> None:
        self.calls.append(("navigate", url))
        site = self.sites.get(url)
        if site is None:
            raise RuntimeError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        self.site = site
        if site.navigate_error is not None:
            raise site.navigate_error
        self.url = site.landing_url or url
        self.elements = {locator: list(texts) for locator, texts in site.elements.items()}

    async def wait_ready(self, timeout_ms: float) -> None:
        self.calls.append(("wait_ready",))

    def _deliver_due_response(self) -> None:
        if self.response_at is None or self.clock.now < self.response_at:
            return
        self.response_at = None
        for target, texts in self.site.response.items():
            self.elements[target] = list(texts)
        self.generating_left = self.site.generating_checks

    async def wait_for_locator(self, locator: str, timeout_ms: float) -> None:
        self.locator_waits.append((locator, timeout_ms))
        self._deliver_due_response()
        if locator in self.elements:
            return
        if (
            self.response_at is not None
            and locator in self.site.response
            and self.clock.now + timeout_ms / 1000 >= self.response_at
        ):
            await self.clock.sleep(self.response_at - self.clock.now)
            self._deliver_due_response()
            return
        await self.clock.sleep(timeout_ms / 1000)
        raise DriverTimeoutError(f"Timeout waiting for '{locator}' after {timeout_ms:.0f}ms")

    async def is_present(self, locator: str) -> bool:
        self.presence_checks.append(locator)
        self._deliver_due_response()
        if locator == STOP and self.generating_left > 0:
            self.generating_left -= 1
            return True
        return locator in self.elements

    async def click(self, locator: str) -> None:
        self.calls.append(("click", locator))
        if self.site.click_cost_ms:
            await self.clock.sleep(self.site.click_cost_ms / 1000)

        errors = self.site.click_errors.get(locator)
        if errors:
            raise errors.pop(0)

        if locator == SEND:
            self.response_at = self.clock.now + self.site.response_delay_ms / 1000
            self._deliver_due_response()

    async def fill(self, locator: str, text: str) -> None:
        self.calls.append(("fill", locator, text))
        self.filled[locator] = text

    async def query_all_text(self, locator: str) -> list[str]:
        self._deliver_due_response()
        return list(self.elements.get(locator, []))

    async def current_url(self) -> str:
        return self.url

    async def title(self) -> str:
        return self.site.title if self.site else ""

    async def storage_state(self) -> dict:
        return {"cookies": [{"name": "sid", "value": self.url}], "origins": []}

    async def close(self) -> None:
        self.close_count += 1
        if self.site is not None and self.site.close_error is not None:
            raise self.site.close_error


class FakeEngine:
    """SessionFactory handing out FakeDrivers."""

    def __init__(self, sites: list[FakeSite], clock: Optional[FakeClock] = None):
        self.sites = {site.url: site for site in sites}
        self.clock = clock or FakeClock()
        self.drivers: list[FakeDriver] = []
        self.closed = False

    async def new_session(self, storage_state=None) -> FakeDriver:
        driver = FakeDriver(self.clock, self.sites, storage_state)
        self.drivers.append(driver)
        return driver

    async def close(self) -> None:
        self.closed = True

    def driver_for(self, url: str) -> FakeDriver:
        for driver in self.drivers:
            if driver.calls and driver.calls[0] == ("navigate", url):
                return driver
        raise KeyError(url)


def make_descriptor(agent_id: str, **completion) -> AgentDescriptor:
    settings = {"settle_delay_ms": 100, "poll_interval_ms": 100, **completion}
    return AgentDescriptor(
        id=agent_id,
        name=agent_id.upper(),
        url=f"https://{agent_id}.test",
        locators=LocatorSet(
            chat_input=(INPUT,),
            submit_button=(SEND,),
            response_container=(MESSAGE,),
            response_text=(MESSAGE_TEXT,),
            in_progress=(STOP,),
        ),
        completion=CompletionSettings(**settings),
    )
