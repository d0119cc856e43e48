"""Shared test fixtures."""

from __future__ import annotations

import itertools
from unittest.mock import AsyncMock

import pytest

from prompt_refactor.clients.llm_client import LLMClient, LLMResponse
from prompt_refactor.models.refactor import Alternative, RefactorResult, RefactorSegment


@pytest.fixture
def sample_prompt() -> str:
    return "I saw a cat running across a neon-lit street at night"


@pytest.fixture
def segments_response() -> str:
    """A well-formed answer in the segments-array shape for sample_prompt."""
    return (
        '{"segments":['
        '{"original":"a cat","alternatives":["a dog","a bird","a fish"]},'
        '{"original":"running","alternatives":["jumping","sleeping","sitting"]},'
        '{"original":"neon-lit street","alternatives":["rainy alley","empty highway","crowded market"]}'
        "]}"
    )


@pytest.fixture
def id_factory():
    """Deterministic ids: id-1, id-2, ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def sunset_result() -> RefactorResult:
    return RefactorResult(
        original_prompt="A cinematic sunset",
        segments=(
            RefactorSegment(
                id="s1",
                original="cinematic",
                start_index=2,
                end_index=11,
                reason="style enhancement",
                alternatives=(
                    Alternative(id="a1", text="dramatic"),
                    Alternative(id="a2", text="sweeping"),
                ),
            ),
        ),
    )


@pytest.fixture
def mock_llm_client() -> LLMClient:
    """Create a mock LLM client."""
    client = AsyncMock(spec=LLMClient)
    client.generate = AsyncMock(
        return_value=LLMResponse(text="{}", input_tokens=100, output_tokens=50)
    )
    client.get_token_summary = lambda: {"input": 0, "output": 0, "calls": []}
    return client
