"""Refactor session: extract suggestions, collect choices, save a version."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Protocol

from prompt_refactor.errors import SessionStateError
from prompt_refactor.models.prompt import PromptVersion
from prompt_refactor.models.refactor import RefactorResult, SelectedAlternatives
from prompt_refactor.pipeline.reconstructor import build_modified_prompt

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ACTIVE = "active"
    APPLYING = "applying"


class Refactorer(Protocol):
    async def refactor(self, prompt: str) -> RefactorResult: ...


class VersionWriter(Protocol):
    def create_version(
        self,
        prompt_id: str,
        content: str,
        version_name: str | None = None,
        image_url: str | None = None,
    ) -> PromptVersion: ...


class RefactorSession:
    """One start -> select -> apply interaction over a single prompt.

    idle -> loading -> active -> applying -> idle. A failed extraction
    returns to idle with ``error`` set; a failed save returns to active so
    the selections survive. Every start and reset bumps a generation
    counter, and async completions from an older generation are dropped.
    """

    def __init__(
        self,
        refactorer: Refactorer,
        store: VersionWriter,
        prompt_id: str,
        original_prompt: str,
    ):
        self.refactorer = refactorer
        self.store = store
        self.prompt_id = prompt_id
        self.original_prompt = original_prompt
        self.phase = SessionPhase.IDLE
        self.result: RefactorResult | None = None
        self.selections: SelectedAlternatives = {}
        self.error: str | None = None
        self.error_kind: str | None = None  # exception class name
        self.last_version: PromptVersion | None = None
        self._generation = 0

    async def start(self) -> RefactorResult | None:
        """Request suggestions for the prompt.

        Returns the new result, or None when extraction failed or the
        session moved on while the request was in flight.
        """
        if self.phase in (SessionPhase.LOADING, SessionPhase.APPLYING):
            raise SessionStateError(f"Cannot start a refactor while {self.phase.value}")

        self._generation += 1
        generation = self._generation
        self.phase = SessionPhase.LOADING
        self.error = None
        self.error_kind = None

        try:
            result = await self.refactorer.refactor(self.original_prompt)
        except Exception as e:
            if generation != self._generation:
                logger.debug("Discarding stale refactor failure: %s", e)
                return None
            logger.warning("Refactor failed: %s", e)
            self.phase = SessionPhase.IDLE
            self.error = str(e) or "Failed to analyze prompt"
            self.error_kind = type(e).__name__
            return None

        if generation != self._generation:
            logger.debug("Discarding stale refactor result")
            return None

        self.result = result
        self.selections = {}
        self.phase = SessionPhase.ACTIVE
        return result

    def select(self, segment_id: str, alternative_id: str) -> None:
        self._require(SessionPhase.ACTIVE, "select an alternative")
        if self.result.get_segment(segment_id) is None:
            raise KeyError(segment_id)
        self.selections = {**self.selections, segment_id: alternative_id}

    def deselect(self, segment_id: str) -> None:
        self._require(SessionPhase.ACTIVE, "clear a selection")
        self.selections = {k: v for k, v in self.selections.items() if k != segment_id}

    def modified_prompt(self) -> str:
        if self.result is None:
            return self.original_prompt
        return build_modified_prompt(
            self.result.original_prompt, self.result.segments, self.selections
        )

    async def apply(self, image_url: str | None = None) -> PromptVersion | None:
        """Save the modified prompt as a new version.

        Returns None without saving when no selection changes the text, and
        None when the save failed (``error`` then holds the reason).
        """
        self._require(SessionPhase.ACTIVE, "apply changes")
        new_prompt = self.modified_prompt()
        if new_prompt == self.original_prompt:
            return None

        generation = self._generation
        self.phase = SessionPhase.APPLYING
        self.error = None
        self.error_kind = None

        try:
            version = await asyncio.to_thread(
                self.store.create_version, self.prompt_id, new_prompt, image_url=image_url
            )
        except Exception as e:
            if generation != self._generation:
                logger.debug("Discarding stale apply failure: %s", e)
                return None
            logger.exception("Saving refactored prompt %s failed", self.prompt_id)
            self.phase = SessionPhase.ACTIVE
            self.error = str(e) or "Failed to apply changes"
            self.error_kind = type(e).__name__
            return None

        if generation != self._generation:
            logger.debug("Version %s saved after the session was reset", version.id)
            return version

        self.last_version = version
        self.original_prompt = version.content
        self._clear()
        return version

    def reset(self) -> None:
        self._generation += 1
        self._clear()

    def _clear(self) -> None:
        self.phase = SessionPhase.IDLE
        self.result = None
        self.selections = {}
        self.error = None
        self.error_kind = None

    def _require(self, phase: SessionPhase, action: str) -> None:
        if self.phase is not phase:
            raise SessionStateError(f"Cannot {action} while {self.phase.value}")
