"""
Rich TUI Interface Module

Terminal diagnostics for the chat aggregator CLI, written to stderr.
"""

from chat_aggregator.tui.console import (
    AgentConsole,
    TUIConfig,
    get_console,
)
from chat_aggregator.tui.login import ManualLoginPrompt
from chat_aggregator.tui.result import (
    print_aggregate,
    print_error,
    print_setup_results,
)

__all__ = [
    "AgentConsole",
    "TUIConfig",
    "get_console",
    "ManualLoginPrompt",
    "print_aggregate",
    "print_error",
    "print_setup_results",
]
