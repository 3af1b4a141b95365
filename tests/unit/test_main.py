"""
Unit tests for the CLI entry point.

The browser is replaced by the in-memory fake engine, so the prompt command
runs end to end without Playwright.
"""

import json
import logging

import pytest

from chat_aggregator.agents import AgentOrchestrator
from chat_aggregator.main import main, parse_agent_ids, parse_args

from fakes import FakeEngine, FakeSite, make_descriptor


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """main() reconfigures logging; put the root logger back afterwards."""
    monkeypatch.delenv("AGENTS_FILE", raising=False)
    monkeypatch.setenv("SESSIONS_DIR", str(tmp_path / "sessions"))
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("chat_aggregator").setLevel(logging.NOTSET)


@pytest.fixture
def fake_browser(monkeypatch, clock):
    """Route the CLI to a FakeEngine; each site's host name is its agent id."""

    def install(sites):
        engine = FakeEngine(sites, clock)
        descriptors = [make_descriptor(site.url.split("//")[1].split(".")[0]) for site in sites]

        def create_orchestrator(browser, config=None, log_buffer=None, **kwargs):
            return AgentOrchestrator(
                browser,
                descriptors=descriptors,
                config=config,
                log_buffer=log_buffer,
                sleep=clock.sleep,
                clock=clock,
            )

        monkeypatch.setattr("chat_aggregator.main.BrowserController", lambda config: engine)
        monkeypatch.setattr("chat_aggregator.main.create_orchestrator", create_orchestrator)
        return engine

    return install


class TestParseArgs:
    def test_agent_list(self):
        assert parse_agent_ids("chatgpt, claude,,gemini ") == ["chatgpt", "claude", "gemini"]

    def test_prompt_command(self):
        args = parse_args(
            ["prompt", "2+2?", "--agents", "chatgpt,claude", "--timeout", "5000", "--max-retries", "1"]
        )
        assert args.command == "prompt"
        assert args.text == "2+2?"
        assert args.agents == ["chatgpt", "claude"]
        assert args.timeout == 5000
        assert args.max_retries == 1
        assert args.headless is False

    def test_setup_defaults_to_all_agents(self):
        args = parse_args(["setup-sessions"])
        assert args.agents is None
        assert args.force is False

    def test_prompt_requires_agents(self):
        with pytest.raises(SystemExit):
            parse_args(["prompt", "hi"])


class TestMain:
    def test_list_agents(self, capsys):
        assert main(["list-agents"]) == 0

        agents = json.loads(capsys.readouterr().out)
        assert [agent["id"] for agent in agents] == ["chatgpt", "claude", "gemini", "perplexity"]

    def test_blank_prompt_is_fatal(self, capsys):
        assert main(["prompt", "   ", "--agents", "claude"]) == 1
        assert capsys.readouterr().out == ""

    def test_unknown_agent_is_fatal(self, capsys, tmp_path):
        log_file = tmp_path / "run-log.json"

        assert main(["prompt", "hi", "--agents", "claude,bard", "--log-file", str(log_file)]) == 1

        assert capsys.readouterr().out == ""
        assert isinstance(json.loads(log_file.read_text(encoding="utf-8")), list)

    def test_partial_failure_prints_result(self, capsys, fake_browser):
        engine = fake_browser(
            [
                FakeSite("https://a.test"),
                FakeSite("https://b.test", navigate_error=RuntimeError("net::ERR_FAILED")),
            ]
        )

        assert main(["prompt", "2+2?", "--agents", "a,b"]) == 0

        result = json.loads(capsys.readouterr().out)
        assert result["prompt"] == "2+2?"
        assert result["success_count"] == 1
        assert result["error_count"] == 1
        assert [outcome["agent_id"] for outcome in result["outcomes"]] == ["a", "b"]
        assert result["outcomes"][0]["response"] == "4"
        assert result["outcomes"][1]["error"]["kind"] == "NETWORK"
        assert engine.closed

    def test_no_agents_available_is_fatal(self, capsys, tmp_path, fake_browser):
        engine = fake_browser(
            [
                FakeSite("https://a.test", landing_url="https://a.test/login"),
                FakeSite("https://b.test", navigate_error=RuntimeError("net::ERR_FAILED")),
            ]
        )
        log_file = tmp_path / "run-log.json"

        assert main(["prompt", "hi", "--agents", "a,b", "--log-file", str(log_file)]) == 1

        assert capsys.readouterr().out == ""
        assert engine.closed
        errors = [
            entry
            for entry in json.loads(log_file.read_text(encoding="utf-8"))
            if entry["level"] == "ERROR"
        ]
        assert {entry["agent_id"] for entry in errors} >= {"a", "b"}
