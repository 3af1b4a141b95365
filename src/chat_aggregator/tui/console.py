"""
Rich TUI Console Setup

Provides the console used for human-facing diagnostics. It writes to stderr
so stdout carries only the serialized result.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.style import Style
from rich.theme import Theme


@dataclass
class TUIConfig:
    """
    TUI configuration loaded from environment variables.

    Attributes:
        color_success: Color for successful agent outcomes
        color_error: Color for failed agent outcomes and fatal errors
        color_info: Color for progress and notices
        show_timestamps: Whether to display timestamps in panel titles
    """

    color_success: str = "green"
    color_error: str = "red"
    color_info: str = "yellow"
    show_timestamps: bool = True

    @classmethod
    def from_env(cls) -> "TUIConfig":
        """Load configuration from environment variables."""
        return cls(
            color_success=os.getenv("COLOR_SUCCESS", "green"),
            color_error=os.getenv("COLOR_ERROR", "red"),
            color_info=os.getenv("COLOR_INFO", "yellow"),
            show_timestamps=os.getenv("SHOW_TIMESTAMPS", "true").lower() == "true",
        )


def create_theme(config: TUIConfig) -> Theme:
    """Create a Rich theme from TUI configuration."""
    return Theme(
        {
            "success": Style(color=config.color_success, bold=True),
            "error": Style(color=config.color_error, bold=True),
            "info": Style(color=config.color_info),
            "timestamp": Style(dim=True),
            "label": Style(bold=True),
        }
    )


class AgentConsole:
    """
    Rich console wrapper for chat aggregator diagnostics.
    """

    def __init__(self, config: Optional[TUIConfig] = None, console: Optional[Console] = None):
        """
        Initialize the agent console.

        Args:
            config: TUI configuration. If None, loads from environment.
            console: Underlying Rich console (stderr console if None)
        """
        self.config = config or TUIConfig.from_env()
        self._theme = create_theme(self.config)
        if console is None:
            console = Console(theme=self._theme, stderr=True)
        else:
            console.push_theme(self._theme)
        self.console = console

    def _get_timestamp(self) -> str:
        """Get formatted timestamp if enabled."""
        if self.config.show_timestamps:
            return datetime.now().strftime("%H:%M:%S")
        return ""

    def title(self, label: str) -> str:
        """Panel title with optional timestamp prefix."""
        timestamp = self._get_timestamp()
        return f"{timestamp} {label}" if timestamp else label

    def print(self, *args, **kwargs) -> None:
        """Passthrough to underlying Rich console."""
        self.console.print(*args, **kwargs)

    def status(self, message: str):
        """Create a status context for progress indication."""
        return self.console.status(f"[info]{message}[/]")


# Global console instance
_console: Optional[AgentConsole] = None


def get_console() -> AgentConsole:
    """Get or create the global console instance."""
    global _console
    if _console is None:
        _console = AgentConsole()
    return _console
