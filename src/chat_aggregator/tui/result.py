"""
Result display for aggregate outcomes.

Renders a per-agent summary table and fatal error panels on the stderr
console. The machine-readable result is printed separately as JSON.
"""

from typing import Optional, Sequence

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models import AggregateResult, SessionSetupResult
from .console import AgentConsole, get_console


def _truncate(value: str, limit: int = 100) -> str:
    value = " ".join(value.split())
    if len(value) > limit:
        return value[: limit - 3] + "..."
    return value


def print_error(
    error_message: str,
    *,
    error_type: Optional[str] = None,
    suggestion: Optional[str] = None,
    console: Optional[AgentConsole] = None,
) -> None:
    """
    Print a fatal error panel.

    Args:
        error_message: The error message
        error_type: Type/category of error
        suggestion: Suggestion for resolution
        console: Console to use (defaults to global console)
    """
    console = console or get_console()

    content = Text()
    content.append("Error", style="error")
    if error_type:
        content.append(f" ({error_type})", style="dim red")
    content.append("\n\n")
    content.append(error_message)

    if suggestion:
        content.append("\n\n")
        content.append(suggestion, style="italic")

    panel = Panel(
        content,
        title=console.title("[ERROR]"),
        title_align="left",
        border_style=console.config.color_error,
        padding=(0, 1),
    )
    console.console.print(panel)


def print_aggregate(
    result: AggregateResult,
    *,
    console: Optional[AgentConsole] = None,
) -> None:
    """
    Print a summary table of an aggregate result.

    Args:
        result: Aggregate result to summarize
        console: Console to use (defaults to global console)
    """
    console = console or get_console()

    table = Table(show_header=True, header_style="label", box=None)
    table.add_column("Agent")
    table.add_column("Status")
    table.add_column("Time", justify="right")
    table.add_column("Retries", justify="right")
    table.add_column("Detail")

    for outcome in result.outcomes:
        if outcome.ok:
            status = Text("success", style="success")
            detail = _truncate(outcome.response or "")
        else:
            error = outcome.error
            status = Text(error.kind.value, style="error")
            flag = "recoverable" if error.recoverable else "non-recoverable"
            detail = f"{_truncate(error.message, 80)} ({flag})"

        table.add_row(
            outcome.name,
            status,
            f"{outcome.elapsed_ms}ms",
            str(outcome.retry_count),
            detail,
        )

    summary = (
        f"{result.success_count} succeeded, {result.error_count} failed "
        f"in {result.total_duration_ms}ms"
    )
    border = console.config.color_success if result.error_count == 0 else console.config.color_info

    console.console.print(
        Panel(
            table,
            title=console.title("[RESULT]"),
            subtitle=summary,
            title_align="left",
            border_style=border,
            padding=(0, 1),
        )
    )


def print_setup_results(
    results: Sequence[SessionSetupResult],
    *,
    console: Optional[AgentConsole] = None,
) -> None:
    """Print one line per agent session setup."""
    console = console or get_console()

    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Agent", style="label")
    table.add_column("Result")

    for result in results:
        if result.saved:
            line = Text("session saved", style="success")
        elif result.skipped:
            line = Text("session exists, skipped", style="info")
        else:
            line = Text(f"{result.error.kind.value}: {result.error.message}", style="error")
        table.add_row(result.name, line)

    console.console.print(
        Panel(
            table,
            title=console.title("[SESSIONS]"),
            title_align="left",
            border_style=console.config.color_info,
            padding=(0, 1),
        )
    )
