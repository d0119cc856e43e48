"""Tests for LLMClient (Claude API wrapper)."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest

from prompt_refactor.clients.llm_client import DEFAULT_MODEL, LLMClient, LLMResponse


def _make_api_message(text: str, input_tokens: int = 100, output_tokens: int = 50) -> MagicMock:
    """Build a mock anthropic Message-like object."""
    message = MagicMock()
    message.usage.input_tokens = input_tokens
    message.usage.output_tokens = output_tokens
    message.content = [MagicMock(text=text)]
    return message


def _rate_limit_error() -> anthropic.RateLimitError:
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    response = httpx.Response(429, request=request)
    return anthropic.RateLimitError("rate limited", response=response, body=None)


class TestLLMClientInit:
    def test_init_default_creates_client_with_no_kwargs(self):
        """Creates AsyncAnthropic with no extra kwargs when no args supplied."""
        with patch("prompt_refactor.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            LLMClient()
            mock_cls.assert_called_once_with()

    def test_init_with_api_key_passes_key(self):
        """Passes api_key kwarg when provided."""
        with patch("prompt_refactor.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            LLMClient(api_key="test-key")
            mock_cls.assert_called_once_with(api_key="test-key")

    def test_init_with_both_params_passes_both(self):
        """Passes both api_key and timeout when both are supplied."""
        with patch("prompt_refactor.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            LLMClient(api_key="test-key", timeout=30.0)
            mock_cls.assert_called_once_with(api_key="test-key", timeout=30.0)


class TestLLMClientGenerate:
    async def test_generate_returns_llm_response(self):
        """generate() wraps API response fields into an LLMResponse dataclass."""
        with patch("prompt_refactor.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            mock_client = MagicMock()
            mock_client.messages.create = AsyncMock(
                return_value=_make_api_message('{"segments": []}', input_tokens=100, output_tokens=50)
            )
            mock_cls.return_value = mock_client

            llm = LLMClient()
            result = await llm.generate("a cat at night")

        assert isinstance(result, LLMResponse)
        assert result.text == '{"segments": []}'
        assert result.input_tokens == 100
        assert result.output_tokens == 50

    async def test_generate_sends_system_and_sampling(self):
        """System prompt, temperature and max_tokens reach messages.create."""
        with patch("prompt_refactor.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            mock_client = MagicMock()
            mock_client.messages.create = AsyncMock(return_value=_make_api_message("{}"))
            mock_cls.return_value = mock_client

            llm = LLMClient()
            await llm.generate("prompt", system="be brief", temperature=0.7, max_tokens=256)

        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["system"] == "be brief"
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 256
        assert kwargs["model"] == DEFAULT_MODEL
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]

    async def test_generate_omits_empty_system(self):
        with patch("prompt_refactor.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            mock_client = MagicMock()
            mock_client.messages.create = AsyncMock(return_value=_make_api_message("{}"))
            mock_cls.return_value = mock_client

            await LLMClient().generate("prompt")

        assert "system" not in mock_client.messages.create.call_args.kwargs

    async def test_generate_skips_blocks_without_text(self):
        """Thinking blocks are left out of the returned text."""
        with patch("prompt_refactor.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            message = _make_api_message("")
            message.content = [
                SimpleNamespace(type="thinking", thinking="let me see"),
                SimpleNamespace(type="text", text='{"a": '),
                SimpleNamespace(type="text", text='["b"]}'),
            ]
            mock_client = MagicMock()
            mock_client.messages.create = AsyncMock(return_value=message)
            mock_cls.return_value = mock_client

            result = await LLMClient().generate("prompt")

        assert result.text == '{"a": ["b"]}'

    async def test_rate_limit_is_not_retried(self):
        """RateLimitError propagates after a single API call."""
        with patch("prompt_refactor.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            mock_client = MagicMock()
            mock_client.messages.create = AsyncMock(side_effect=_rate_limit_error())
            mock_cls.return_value = mock_client

            llm = LLMClient()
            with pytest.raises(anthropic.RateLimitError):
                await llm.generate("prompt")

        assert mock_client.messages.create.call_count == 1
        assert llm._token_log == []

    async def test_token_log_accumulates_across_calls(self):
        """Each generate() call appends one entry to _token_log."""
        with patch("prompt_refactor.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            mock_client = MagicMock()
            mock_client.messages.create = AsyncMock(
                return_value=_make_api_message("response", input_tokens=10, output_tokens=5)
            )
            mock_cls.return_value = mock_client

            llm = LLMClient()
            await llm.generate("prompt one")
            await llm.generate("prompt two")

        assert len(llm._token_log) == 2

    async def test_token_log_stores_model_and_counts(self):
        """_token_log entries are (model, input_tokens, output_tokens) tuples."""
        with patch("prompt_refactor.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            mock_client = MagicMock()
            mock_client.messages.create = AsyncMock(
                return_value=_make_api_message("resp", input_tokens=20, output_tokens=8)
            )
            mock_cls.return_value = mock_client

            llm = LLMClient()
            await llm.generate("prompt", model="claude-sonnet-4-5-20250929")

        model, inp, out = llm._token_log[0]
        assert model == "claude-sonnet-4-5-20250929"
        assert inp == 20
        assert out == 8


class TestLLMClientTokenSummary:
    def test_get_token_summary_returns_correct_totals(self):
        """get_token_summary() sums input and output tokens across all log entries."""
        with patch("prompt_refactor.clients.llm_client.anthropic.AsyncAnthropic"):
            llm = LLMClient()
            llm._token_log = [
                ("claude-haiku-4-5-20251001", 100, 50),
                ("claude-haiku-4-5-20251001", 200, 80),
            ]

        summary = llm.get_token_summary()

        assert summary["input"] == 300
        assert summary["output"] == 130
        assert len(summary["calls"]) == 2

    def test_get_token_summary_clears_log_after_return(self):
        """get_token_summary() empties _token_log so subsequent calls return zeros."""
        with patch("prompt_refactor.clients.llm_client.anthropic.AsyncAnthropic"):
            llm = LLMClient()
            llm._token_log = [("claude-haiku-4-5-20251001", 50, 25)]

        llm.get_token_summary()
        second_summary = llm.get_token_summary()

        assert second_summary["input"] == 0
        assert second_summary["output"] == 0
        assert second_summary["calls"] == []
