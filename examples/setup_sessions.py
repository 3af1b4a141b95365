#!/usr/bin/env python
"""
Session Setup Example

Opens every supported chat front-end in a visible browser, waits for you to
log in, and stores each session under ./sessions for later prompt runs.

Usage:
    python examples/setup_sessions.py
"""

import asyncio

from chat_aggregator.agents import create_orchestrator
from chat_aggregator.browser import BrowserConfig, BrowserController
from chat_aggregator.tui import ManualLoginPrompt, print_setup_results


async def main():
    """Log in to each provider once."""
    async with BrowserController(BrowserConfig(headless=False)) as browser:
        orchestrator = create_orchestrator(browser)
        results = await orchestrator.setup_sessions(login_waiter=ManualLoginPrompt())

    print_setup_results(results)


if __name__ == "__main__":
    asyncio.run(main())
