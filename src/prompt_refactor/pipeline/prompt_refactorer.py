"""Refactor agent: asks the LLM for phrase alternatives and anchors them."""

from __future__ import annotations

import logging

import anthropic

from prompt_refactor.clients.llm_client import DEFAULT_MODEL, LLMClient
from prompt_refactor.errors import ExtractionError
from prompt_refactor.models.refactor import RefactorResult
from prompt_refactor.pipeline.anchorer import IdFactory, OverlapPolicy, new_id
from prompt_refactor.pipeline.extractor import extract_segments

logger = logging.getLogger(__name__)

REFACTOR_SYSTEM = """\
You are a prompt engineering expert. The user gives you an image generation prompt.
Pick 3 short phrases from it and suggest 3 alternatives for each.

Reply ONLY with this exact JSON format:
{"segments":[{"original":"phrase from prompt","alternatives":["alt1","alt2","alt3"]},{"original":"phrase from prompt","alternatives":["alt1","alt2","alt3"]},{"original":"phrase from prompt","alternatives":["alt1","alt2","alt3"]}]}

Rules:
- No explanation, no markdown, no thinking, ONLY the JSON object
- "original" must be an exact substring from the user's prompt
- Exactly 3 segments, exactly 3 alternatives each"""


class PromptRefactorer:
    """Produce anchored refactor suggestions for an image prompt.

    Models are tried in order. Each gets ``attempts_per_model`` tries; an
    unusable answer or an API error costs one try, a rate limit moves
    straight on to the next model.
    """

    def __init__(
        self,
        llm: LLMClient,
        model: str = DEFAULT_MODEL,
        *,
        fallback_models: tuple[str, ...] | list[str] = (),
        attempts_per_model: int = 2,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        overlap_policy: OverlapPolicy = OverlapPolicy.DROP,
        id_factory: IdFactory = new_id,
    ):
        if attempts_per_model < 1:
            raise ValueError("attempts_per_model must be at least 1")
        self.llm = llm
        self.models = [model, *fallback_models]
        self.attempts_per_model = attempts_per_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.overlap_policy = overlap_policy
        self.id_factory = id_factory
        self.attempts_by_model: dict[str, int] = {}
        self.last_model: str | None = None

    @property
    def attempts(self) -> int:
        """Calls made during the last refactor, across all models."""
        return sum(self.attempts_by_model.values())

    async def refactor(self, prompt: str) -> RefactorResult:
        """Return segments and alternatives for ``prompt``.

        Raises:
            ValueError: ``prompt`` is blank.
            ExtractionError | anthropic.APIError: every model failed; the
                last failure is re-raised.
        """
        if not prompt or not prompt.strip():
            raise ValueError("Cannot refactor an empty prompt.")

        self.attempts_by_model = {}
        last_error: Exception = ExtractionError("Refactor failed")

        for model in self.models:
            self.last_model = model
            for attempt in range(1, self.attempts_per_model + 1):
                self.attempts_by_model[model] = self.attempts_by_model.get(model, 0) + 1
                try:
                    response = await self.llm.generate(
                        prompt=prompt,
                        system=REFACTOR_SYSTEM,
                        model=model,
                        temperature=self.temperature,
                        max_tokens=self.max_tokens,
                    )
                    return extract_segments(
                        response.text,
                        prompt,
                        id_factory=self.id_factory,
                        overlap_policy=self.overlap_policy,
                    )
                except anthropic.RateLimitError as e:
                    logger.warning("%s rate limited, trying next model", model)
                    last_error = e
                    break
                except (ExtractionError, anthropic.APIError) as e:
                    logger.warning("Refactor attempt %d with %s failed: %s", attempt, model, e)
                    last_error = e

        raise last_error
