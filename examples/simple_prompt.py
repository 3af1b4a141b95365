#!/usr/bin/env python
"""
Simple Prompt Example

Sends one prompt to two chat front-ends and prints each answer.

Usage:
    python examples/simple_prompt.py

Requirements:
    - Saved sessions (run examples/setup_sessions.py first)
    - Chat aggregator installed: pip install -e . && playwright install chromium
"""

import asyncio

from chat_aggregator.agents import create_orchestrator
from chat_aggregator.browser import create_browser
from chat_aggregator.models import PromptRequest


async def main():
    """Ask ChatGPT and Claude the same question."""
    request = PromptRequest(prompt="What is 2+2?", agent_ids=("chatgpt", "claude"))

    print(f"Prompt: {request.prompt}\n")

    async with create_browser() as browser:
        orchestrator = create_orchestrator(browser)
        result = await orchestrator.run(request)

    for outcome in result.outcomes:
        if outcome.ok:
            print(f"{outcome.name}: {outcome.response}")
        else:
            print(f"{outcome.name} failed ({outcome.error.kind.value}): {outcome.error.message}")

    print(f"\n{result.success_count} succeeded, {result.error_count} failed")


if __name__ == "__main__":
    asyncio.run(main())
