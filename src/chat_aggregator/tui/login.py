"""
Manual login prompt.

Used during session setup: the browser shows the provider's login page and
the user confirms in the terminal once logged in. Prompts for concurrently
opened agents are shown one at a time.

The terminal read happens on a daemon thread. Cancelling the waiting task
(Ctrl-C under asyncio.run) returns at once; the abandoned read never holds
up interpreter exit.
"""

import asyncio
import threading
from typing import Optional

from rich.panel import Panel
from rich.prompt import Prompt
from rich.text import Text

from ..agents.descriptors import AgentDescriptor
from .console import AgentConsole, get_console


class ManualLoginPrompt:
    """
    Async login waiter for AgentOrchestrator.setup_sessions().

    Usage:
        >>> prompt = ManualLoginPrompt()
        >>> await orchestrator.setup_sessions(["claude"], login_waiter=prompt)
    """

    def __init__(self, console: Optional[AgentConsole] = None):
        self.console = console or get_console()
        self._lock = asyncio.Lock()

    async def __call__(self, descriptor: AgentDescriptor) -> bool:
        async with self._lock:
            loop = asyncio.get_running_loop()
            answer: asyncio.Future[bool] = loop.create_future()

            def ask() -> None:
                try:
                    result = self._ask(descriptor)
                except BaseException as e:
                    _deliver(loop, answer, error=e)
                else:
                    _deliver(loop, answer, result=result)

            threading.Thread(target=ask, name=f"login-{descriptor.id}", daemon=True).start()
            return await answer

    def _ask(self, descriptor: AgentDescriptor) -> bool:
        """
        Request the user to log in by hand.

        Returns:
            True once the user confirms; False if they cancelled
        """
        content = Text()
        content.append(f"Log in to {descriptor.name}\n\n", style="label")
        content.append(
            f"A browser window is open at {descriptor.url}.\n"
            "Complete the login there, then come back here."
        )

        self.console.console.print(
            Panel(
                content,
                title=self.console.title("[LOGIN REQUIRED]"),
                title_align="left",
                border_style=self.console.config.color_info,
                padding=(1, 2),
            )
        )

        try:
            Prompt.ask(
                f"[info]Press Enter when logged in to {descriptor.name}...[/]",
                default="",
                show_default=False,
                console=self.console.console,
            )
            return True
        except EOFError:
            self.console.print("\n[info]Cancelled[/]")
            return False


def _deliver(loop: asyncio.AbstractEventLoop, answer: asyncio.Future, result=None, error=None) -> None:
    """Hand a prompt thread's answer back to the event loop."""

    def settle() -> None:
        # Already cancelled when the waiting task was interrupted
        if answer.done():
            return
        if error is not None:
            answer.set_exception(error)
        else:
            answer.set_result(result)

    if not loop.is_closed():
        loop.call_soon_threadsafe(settle)
