"""Records of refactor/apply runs and their monthly roll-up."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class UsageLog(BaseModel):
    """One CLI run: a refactor request or saving the chosen alternatives."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=datetime.now)
    mode: Literal["refactor", "apply"]
    prompt_id: str | None = None
    model: str | None = None  # last model tried
    attempts_by_model: dict[str, int] = {}
    segment_count: int = 0
    elapsed_seconds: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    failure_kind: str | None = None  # exception class name, e.g. "NoJsonFound"
    error_message: str | None = None

    @property
    def success(self) -> bool:
        return self.failure_kind is None

    @property
    def attempts(self) -> int:
        return sum(self.attempts_by_model.values())


class UsageReport(BaseModel):
    """Aggregates over the runs of one calendar month."""

    month: str  # "YYYY-MM"
    runs: int = 0
    failures: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    avg_segments: float | None = None  # successful refactors only
    failures_by_kind: dict[str, int] = {}
    attempts_by_model: dict[str, int] = {}

    @property
    def success_rate(self) -> float:
        return (self.runs - self.failures) / self.runs * 100 if self.runs else 0.0
