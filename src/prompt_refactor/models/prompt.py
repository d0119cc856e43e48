"""Pydantic models for stored prompts and their versions."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class PromptVersion(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    prompt_id: str
    content: str
    version_name: str  # "v1", "v2", ...
    image_url: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)


class Prompt(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    content: str  # text of the current version
    tags: list[str] = []
    current_version_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
