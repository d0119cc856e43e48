"""Application configuration loaded from config.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

OVERLAP_POLICIES = ("drop", "keep")


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")


@dataclass(frozen=True)
class LLMConfig:
    model: str = "claude-haiku-4-5-20251001"
    fallback_models: tuple[str, ...] = ("claude-sonnet-4-5-20250929",)
    attempts_per_model: int = 2
    temperature: float = 0.7
    max_tokens: int = 1024
    timeout: int = 60

    def __post_init__(self) -> None:
        # YAML gives lists
        object.__setattr__(self, "fallback_models", tuple(self.fallback_models))
        _check_range("attempts_per_model", self.attempts_per_model, 1, 5)
        _check_range("temperature", self.temperature, 0.0, 1.0)
        _check_range("max_tokens", self.max_tokens, 1, 8192)
        _check_range("timeout", self.timeout, 1, 600)


@dataclass(frozen=True)
class ExtractionConfig:
    overlap_policy: str = "drop"

    def __post_init__(self) -> None:
        if self.overlap_policy not in OVERLAP_POLICIES:
            raise ValueError(
                f"overlap_policy must be one of {OVERLAP_POLICIES}, got {self.overlap_policy!r}"
            )


@dataclass(frozen=True)
class StoreConfig:
    db_path: str = "~/.prompt-refactor/prompts.db"
    usage_db_path: str = "~/.prompt-refactor/usage.db"

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()

    @property
    def resolved_usage_db_path(self) -> Path:
        return Path(self.usage_db_path).expanduser()


@dataclass(frozen=True)
class AppConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    store: StoreConfig = field(default_factory=StoreConfig)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        # Look for config.yaml relative to the project root
        candidates = [
            Path.cwd() / "config.yaml",
            Path(__file__).resolve().parent.parent.parent / "config.yaml",
        ]
        for c in candidates:
            if c.exists():
                path = c
                break

    raw: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text()) or {}

    return AppConfig(
        llm=LLMConfig(**raw.get("llm", {})),
        extraction=ExtractionConfig(**raw.get("extraction", {})),
        store=StoreConfig(**raw.get("store", {})),
    )
