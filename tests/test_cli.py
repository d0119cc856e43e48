"""Tests for the typer CLI."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from typer.testing import CliRunner

from prompt_refactor import cli
from prompt_refactor.clients.llm_client import LLMResponse
from prompt_refactor.config import AppConfig, StoreConfig
from prompt_refactor.logging.models import UsageLog
from prompt_refactor.logging.usage_store import UsageStore
from prompt_refactor.store.prompt_store import PromptStore

runner = CliRunner()


@pytest.fixture
def config(tmp_path, monkeypatch) -> AppConfig:
    config = AppConfig(
        store=StoreConfig(
            db_path=str(tmp_path / "prompts.db"),
            usage_db_path=str(tmp_path / "usage.db"),
        )
    )
    monkeypatch.setattr(cli, "load_config", lambda: config)
    return config


@pytest.fixture
def fake_llm(monkeypatch, segments_response):
    llm = MagicMock()
    llm.generate = AsyncMock(
        return_value=LLMResponse(text=segments_response, input_tokens=100, output_tokens=50)
    )
    llm.get_token_summary.return_value = {
        "input": 100,
        "output": 50,
        "calls": [("claude-haiku-4-5-20251001", 100, 50)],
    }
    monkeypatch.setattr(cli, "LLMClient", lambda **kwargs: llm)
    return llm


class TestNewAndHistory:
    def test_new_creates_prompt(self, config):
        result = runner.invoke(cli.app, ["new", "Night", "a cat at night", "-t", "street"])

        assert result.exit_code == 0
        assert "Created prompt" in result.output
        prompts = PromptStore(config.store.resolved_db_path).list_prompts()
        assert len(prompts) == 1
        assert prompts[0].tags == ["street"]

    def test_history_lists_versions(self, config):
        store = PromptStore(config.store.resolved_db_path)
        prompt = store.create_prompt("Night", "a cat at night")
        store.create_version(prompt.id, "a dog at night")

        result = runner.invoke(cli.app, ["history", prompt.id])

        assert result.exit_code == 0
        assert "v1" in result.output
        assert "v2" in result.output

    def test_history_unknown_prompt(self, config):
        result = runner.invoke(cli.app, ["history", "missing"])
        assert result.exit_code == 1


class TestRefactor:
    def test_refactor_text_without_apply(self, config, fake_llm, sample_prompt):
        result = runner.invoke(cli.app, ["refactor", sample_prompt, "--no-apply"])

        assert result.exit_code == 0
        fake_llm.generate.assert_called_once()
        logs = UsageStore(config.store.resolved_usage_db_path).recent()
        assert len(logs) == 1
        assert logs[0].mode == "refactor"
        assert logs[0].segment_count == 3
        assert logs[0].input_tokens == 100
        assert logs[0].attempts_by_model == {"claude-haiku-4-5-20251001": 1}
        assert logs[0].success is True

    def test_refactor_and_save_version(self, config, fake_llm, sample_prompt):
        store = PromptStore(config.store.resolved_db_path)
        prompt = store.create_prompt("Night", sample_prompt)

        result = runner.invoke(
            cli.app, ["refactor", "--prompt-id", prompt.id], input="1\n0\n0\ny\n"
        )

        assert result.exit_code == 0
        assert "Saved v2" in result.output
        assert store.get_prompt(prompt.id).content == sample_prompt.replace("a cat", "a dog")
        modes = sorted(log.mode for log in UsageStore(config.store.resolved_usage_db_path).recent())
        assert modes == ["apply", "refactor"]

    def test_no_selection_saves_nothing(self, config, fake_llm, sample_prompt):
        store = PromptStore(config.store.resolved_db_path)
        prompt = store.create_prompt("Night", sample_prompt)

        result = runner.invoke(cli.app, ["refactor", "-p", prompt.id], input="0\n0\n0\n")

        assert result.exit_code == 0
        assert "No changes selected" in result.output
        assert len(store.list_versions(prompt.id)) == 1

    def test_refactor_failure_exits_nonzero(self, config, fake_llm, sample_prompt):
        fake_llm.generate.return_value = LLMResponse(
            text="Sorry, I can't do that.", input_tokens=10, output_tokens=5
        )

        result = runner.invoke(cli.app, ["refactor", sample_prompt])

        assert result.exit_code == 1
        assert "Refactor failed" in result.output
        log = UsageStore(config.store.resolved_usage_db_path).recent()[0]
        assert log.success is False
        assert log.failure_kind == "NoJsonFound"
        assert log.attempts == 4
        assert "No JSON found" in log.error_message

    def test_requires_text_or_prompt_id(self, config, fake_llm):
        result = runner.invoke(cli.app, ["refactor"])
        assert result.exit_code == 1
        fake_llm.generate.assert_not_called()

    def test_unknown_prompt_id(self, config, fake_llm):
        result = runner.invoke(cli.app, ["refactor", "-p", "missing"])
        assert result.exit_code == 1


class TestParse:
    def test_parse_prints_segments(self, config, tmp_path):
        raw = tmp_path / "response.txt"
        raw.write_text(
            '```json\n{"segments":[{"original":"a cat","alternatives":["a dog","a bird","a fish"]}]}\n```',
            encoding="utf-8",
        )

        result = runner.invoke(cli.app, ["parse", str(raw), "--prompt", "I saw a cat running"])

        assert result.exit_code == 0
        assert '"start_index": 6' in result.output
        assert '"end_index": 11' in result.output

    def test_parse_reports_extraction_error(self, config, tmp_path):
        raw = tmp_path / "response.txt"
        raw.write_text("no json here", encoding="utf-8")

        result = runner.invoke(cli.app, ["parse", str(raw), "--prompt", "anything"])

        assert result.exit_code == 1
        assert "NoJsonFound" in result.output

    def test_parse_missing_file(self, config, tmp_path):
        result = runner.invoke(cli.app, ["parse", str(tmp_path / "nope.txt"), "--prompt", "x"])
        assert result.exit_code == 1


class TestUsage:
    def test_usage_empty(self, config):
        result = runner.invoke(cli.app, ["usage"])
        assert result.exit_code == 0
        assert "Runs: 0" in result.output

    def test_usage_shows_failures_and_recent_runs(self, config):
        store = UsageStore(config.store.resolved_usage_db_path)
        store.record(UsageLog(mode="refactor", model="model-a", attempts_by_model={"model-a": 2}))
        store.record(UsageLog(mode="refactor", model="model-a", failure_kind="MalformedJson"))

        result = runner.invoke(cli.app, ["usage", "--recent", "5"])

        assert result.exit_code == 0
        assert "Runs: 2" in result.output
        assert "success 50%" in result.output
        assert "MalformedJson" in result.output
        assert "Recent runs" in result.output
