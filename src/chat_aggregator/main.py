"""
Chat Aggregator CLI Entry Point

Usage:
    chat-aggregator list-agents
    chat-aggregator setup-sessions --agents chatgpt,claude
    chat-aggregator prompt "What is 2+2?" --agents chatgpt,claude,gemini

The prompt command prints the aggregate result as JSON on stdout. Fatal
failures print a diagnostic on stderr and exit with status 1.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv
from pydantic import ValidationError

# Load environment variables
load_dotenv()

from chat_aggregator.agents import AgentOrchestrator, build_registry, create_orchestrator, load_descriptors
from chat_aggregator.browser import BrowserConfig, BrowserController, SessionStore
from chat_aggregator.config import AggregatorConfig, configure_logging
from chat_aggregator.errors import InvalidRequestError, NoAgentsAvailableError
from chat_aggregator.log_buffer import LogBuffer
from chat_aggregator.models import PromptRequest
from chat_aggregator.tui import (
    ManualLoginPrompt,
    get_console,
    print_aggregate,
    print_error,
    print_setup_results,
)


def parse_agent_ids(value: str) -> list[str]:
    """Split a comma-separated agent list, dropping blanks."""
    return [part.strip() for part in value.split(",") if part.strip()]


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="chat-aggregator",
        description="Send one prompt to several chat front-ends at once",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    chat-aggregator setup-sessions --agents chatgpt,claude
    chat-aggregator prompt "Explain recursion" --agents chatgpt,claude,gemini
    chat-aggregator prompt "2+2?" --agents claude --headless --max-retries 1
        """,
    )

    # Options shared by every command
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging with timestamps",
    )
    common.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Write the captured log buffer as JSON to this file",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "list-agents", parents=[common], help="List the available agents as JSON"
    )

    setup = subparsers.add_parser(
        "setup-sessions",
        parents=[common],
        help="Open each agent's site, wait for a manual login, save the session",
    )
    setup.add_argument(
        "--agents", "-a",
        type=parse_agent_ids,
        default=None,
        help="Comma-separated agent ids (default: all)",
    )
    setup.add_argument(
        "--force",
        action="store_true",
        help="Redo agents that already have a saved session",
    )
    setup.add_argument(
        "--no-wait",
        action="store_true",
        help="Save sessions right after the page loads, without prompting",
    )

    prompt = subparsers.add_parser(
        "prompt", parents=[common], help="Send a prompt to the selected agents"
    )
    prompt.add_argument("text", help="Prompt text")
    prompt.add_argument(
        "--agents", "-a",
        type=parse_agent_ids,
        required=True,
        help="Comma-separated agent ids",
    )
    prompt.add_argument(
        "--timeout",
        type=int,
        default=None,
        help="Response wait budget per agent in ms",
    )
    prompt.add_argument(
        "--max-retries",
        type=int,
        default=None,
        help="Retries after the first attempt",
    )
    prompt.add_argument(
        "--headless",
        action="store_true",
        help="Run browser in headless mode",
    )
    prompt.add_argument(
        "--summary",
        action="store_true",
        help="Also print a summary table on stderr",
    )

    return parser.parse_args(argv)


def _write_logs(log_buffer: LogBuffer, path: Optional[Path]) -> None:
    if path is not None:
        path.write_text(log_buffer.export(), encoding="utf-8")


def cmd_list_agents(config: AggregatorConfig) -> int:
    extra = load_descriptors(config.agents_file) if config.agents_file else None
    registry = build_registry(extra)
    print(json.dumps([d.model_dump(mode="json") for d in registry.values()], indent=2))
    return 0


async def run_prompt(args: argparse.Namespace, config: AggregatorConfig, log_buffer: LogBuffer) -> int:
    """
    Run the prompt command.

    Returns:
        Process exit status
    """
    console = get_console()

    try:
        request = PromptRequest(
            prompt=args.text,
            agent_ids=tuple(args.agents),
            timeout_ms=args.timeout,
            max_retries=args.max_retries,
        )
    except ValidationError as e:
        print_error(str(e), error_type="InvalidRequest")
        return 1

    browser_config = BrowserConfig.from_env()
    if args.headless:
        browser_config.headless = True

    browser = BrowserController(browser_config)
    orchestrator = create_orchestrator(browser, config=config, log_buffer=log_buffer)

    try:
        with console.status(f"Waiting for {len(request.agent_ids)} agent(s)..."):
            result = await orchestrator.run(request)
    except InvalidRequestError as e:
        print_error(str(e), error_type="InvalidRequest")
        return 1
    except NoAgentsAvailableError as e:
        details = "\n".join(
            f"{failure.name}: {failure.error.kind.value} - {failure.error.message}"
            for failure in e.failures
            if failure is not None and failure.error is not None
        )
        print_error(
            f"{e}\n\n{details}" if details else str(e),
            error_type="NoAgentsAvailable",
            suggestion="Run 'chat-aggregator setup-sessions' if sessions have expired.",
        )
        return 1
    finally:
        await browser.close()

    print(result.model_dump_json(indent=2))
    if args.summary:
        print_aggregate(result)
    return 0


async def run_setup(args: argparse.Namespace, config: AggregatorConfig, log_buffer: LogBuffer) -> int:
    """
    Run the setup-sessions command.

    Returns:
        Process exit status
    """
    browser = BrowserController(BrowserConfig.from_env())
    orchestrator: AgentOrchestrator = create_orchestrator(
        browser,
        session_store=SessionStore(),
        config=config,
        log_buffer=log_buffer,
    )
    login_waiter = None if args.no_wait else ManualLoginPrompt()

    try:
        results = await orchestrator.setup_sessions(
            args.agents,
            login_waiter=login_waiter,
            force=args.force,
        )
    except InvalidRequestError as e:
        print_error(str(e), error_type="InvalidRequest")
        return 1
    finally:
        await browser.close()

    print(json.dumps([r.model_dump(mode="json") for r in results], indent=2))
    print_setup_results(results)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    configure_logging(
        level=logging.DEBUG if args.verbose else None,
        verbose=args.verbose,
    )

    config = AggregatorConfig.from_env()
    log_buffer = LogBuffer(capacity=config.log_buffer_size)

    if args.command == "list-agents":
        return cmd_list_agents(config)

    runner = run_prompt if args.command == "prompt" else run_setup
    try:
        return asyncio.run(runner(args, config, log_buffer))
    except KeyboardInterrupt:
        get_console().print("\n[info]Interrupted[/]")
        return 130
    finally:
        _write_logs(log_buffer, args.log_file)


if __name__ == "__main__":
    sys.exit(main())
