"""
Integration tests against a real headless browser.

A self-contained fake chat page is served as a data: URL: clicking Send shows
a Stop button for a moment, then appends the echoed answer. The tests are
skipped when no Playwright browser can be launched.
"""

from urllib.parse import quote

import pytest

from chat_aggregator.agents import AgentDescriptor, AgentOrchestrator, CompletionSettings, LocatorSet
from chat_aggregator.browser import BrowserConfig, BrowserController
from chat_aggregator.config import AggregatorConfig
from chat_aggregator.errors import DriverTimeoutError, ErrorKind
from chat_aggregator.models import PromptRequest

CHAT_PAGE = """<!DOCTYPE html>
<html>
<head><title>Echo Chat</title></head>
<body>
    <textarea id="input" placeholder="Message"></textarea>
    <button id="send">Send</button>
    <div id="log"></div>
    <script>
        document.getElementById('send').addEventListener('click', () => {
            const text = document.getElementById('input').value;
            const stop = document.createElement('button');
            stop.id = 'stop';
            stop.textContent = 'Stop';
            document.body.appendChild(stop);
            setTimeout(() => {
                stop.remove();
                const message = document.createElement('div');
                message.className = 'message';
                const p = document.createElement('p');
                p.textContent = 'echo: ' + text;
                message.appendChild(p);
                document.getElementById('log').appendChild(message);
            }, 300);
        });
    </script>
</body>
</html>"""

CHAT_URL = "data:text/html," + quote(CHAT_PAGE)

ECHO = AgentDescriptor(
    id="echo",
    name="Echo",
    url=CHAT_URL,
    locators=LocatorSet(
        chat_input=("#missing-input", "#input"),
        submit_button=("#send",),
        response_container=(".message",),
        response_text=(".message:last-child p",),
        in_progress=("#stop",),
    ),
    completion=CompletionSettings(settle_delay_ms=50, poll_interval_ms=100),
    login_url_patterns=("/login",),
)


async def launch_or_skip() -> BrowserController:
    browser = BrowserController(BrowserConfig(browser_type="chromium", headless=True))
    try:
        await browser.initialize()
    except Exception as e:
        await browser.close()
        pytest.skip(f"Playwright browser not available: {e}")
    assert browser.is_initialized
    return browser


class TestPlaywrightDriver:
    """PageDriver surface over a real page."""

    @pytest.mark.asyncio
    async def test_driver_round_trip(self):
        browser = await launch_or_skip()
        try:
            driver = await browser.new_session()
            await driver.navigate(CHAT_URL, 10000)
            await driver.wait_ready(10000)

            assert await driver.title() == "Echo Chat"
            assert await driver.is_present("#input")
            assert not await driver.is_present("#stop")

            await driver.fill("#input", "hello")
            await driver.click("#send")
            await driver.wait_for_locator(".message p", 5000)

            assert await driver.query_all_text(".message p") == ["echo: hello"]
            assert "cookies" in await driver.storage_state()
            await driver.close()
        finally:
            await browser.close()

    @pytest.mark.asyncio
    async def test_wait_timeout_is_translated(self):
        browser = await launch_or_skip()
        try:
            driver = await browser.new_session()
            await driver.navigate(CHAT_URL, 10000)

            with pytest.raises(DriverTimeoutError):
                await driver.wait_for_locator("#never-there", 200)
            await driver.close()
        finally:
            await browser.close()


class TestOrchestratorWithBrowser:
    """Full prompt run through a real page."""

    @pytest.mark.asyncio
    async def test_prompt_round_trip(self):
        browser = await launch_or_skip()
        config = AggregatorConfig(
            page_load_timeout_ms=10000,
            selector_timeout_ms=2000,
            response_timeout_ms=5000,
            max_retries=1,
            retry_delay_ms=100,
        )
        orchestrator = AgentOrchestrator(browser, descriptors=[ECHO], config=config)
        try:
            result = await orchestrator.run(PromptRequest(prompt="2+2?", agent_ids=("echo",)))
        finally:
            await browser.close()

        outcome = result.outcome_for("echo")
        assert outcome.ok, outcome.error
        assert outcome.response == "echo: 2+2?"
        assert outcome.retry_count == 0

    @pytest.mark.asyncio
    async def test_missing_response_is_classified(self):
        browser = await launch_or_skip()
        broken = ECHO.model_copy(
            update={
                "id": "broken",
                "locators": ECHO.locators.model_copy(
                    update={"response_text": ("#nope",), "response_container": ("#nothing",)}
                ),
            }
        )
        config = AggregatorConfig(
            page_load_timeout_ms=10000,
            selector_timeout_ms=300,
            response_timeout_ms=2000,
            max_retries=0,
        )
        orchestrator = AgentOrchestrator(browser, descriptors=[broken], config=config)
        try:
            result = await orchestrator.run(PromptRequest(prompt="hi", agent_ids=("broken",)))
        finally:
            await browser.close()

        error = result.outcome_for("broken").error
        assert error.kind is ErrorKind.LOCATOR_NOT_FOUND
        assert error.recoverable is True
