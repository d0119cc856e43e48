"""Data models for the prompt refactor pipeline."""

from prompt_refactor.models.prompt import Prompt, PromptVersion
from prompt_refactor.models.refactor import (
    Alternative,
    RefactorResult,
    RefactorSegment,
    SelectedAlternatives,
)

__all__ = [
    "Alternative",
    "Prompt",
    "PromptVersion",
    "RefactorResult",
    "RefactorSegment",
    "SelectedAlternatives",
]
