"""Normalize decoded LLM JSON into canonical (phrase, alternatives) pairs.

Two response shapes are understood, tried in order:

* ``SegmentsArrayShape``: ``{"segments": [{"original": ..., "alternatives": [...]}, ...]}``
* ``FlatMapShape``: ``{"phrase": ["alt1", "alt2", "alt3"], ...}``

The first shape whose structural precondition holds is used, even when it
produces no candidates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from prompt_refactor.errors import NoRecognizedSchema

logger = logging.getLogger(__name__)

MAX_SEGMENTS = 3
MAX_ALTERNATIVES = 3


@dataclass(frozen=True)
class CandidateSegment:
    """Schema-independent suggestion: a phrase and its replacement texts."""

    original: str
    alternatives: tuple[str, ...] = ()


def _string_items(value: list, limit: int) -> tuple[str, ...]:
    return tuple(item for item in value if isinstance(item, str))[:limit]


class ResponseShape:
    """A JSON layout the model may answer with."""

    name = "base"

    def matches(self, value: Any) -> bool:
        raise NotImplementedError

    def candidates(
        self, value: Any, max_segments: int, max_alternatives: int
    ) -> list[CandidateSegment]:
        raise NotImplementedError


class SegmentsArrayShape(ResponseShape):
    name = "segments_array"

    def matches(self, value: Any) -> bool:
        return isinstance(value, dict) and isinstance(value.get("segments"), list)

    def candidates(
        self, value: Any, max_segments: int, max_alternatives: int
    ) -> list[CandidateSegment]:
        result = []
        for item in value["segments"][:max_segments]:
            if not isinstance(item, dict) or not isinstance(item.get("original"), str):
                continue
            alts = item.get("alternatives")
            result.append(
                CandidateSegment(
                    original=item["original"],
                    alternatives=_string_items(alts, max_alternatives) if isinstance(alts, list) else (),
                )
            )
        return result


class FlatMapShape(ResponseShape):
    name = "flat_map"

    def matches(self, value: Any) -> bool:
        return isinstance(value, dict)

    def candidates(
        self, value: Any, max_segments: int, max_alternatives: int
    ) -> list[CandidateSegment]:
        result = []
        for key, alts in value.items():
            # first element doubles as the "array of strings" type guard
            if not isinstance(alts, list) or not alts or not isinstance(alts[0], str):
                continue
            result.append(
                CandidateSegment(original=key, alternatives=_string_items(alts, max_alternatives))
            )
            if len(result) >= max_segments:
                break
        return result


SHAPES: tuple[ResponseShape, ...] = (SegmentsArrayShape(), FlatMapShape())


def normalize(
    parsed: Any,
    *,
    max_segments: int = MAX_SEGMENTS,
    max_alternatives: int = MAX_ALTERNATIVES,
) -> list[CandidateSegment]:
    """Map a decoded JSON value to at most ``max_segments`` candidates.

    Raises:
        NoRecognizedSchema: no shape applies, or the applicable shape
            yields zero candidates.
    """
    for shape in SHAPES:
        if not shape.matches(parsed):
            continue
        candidates = shape.candidates(parsed, max_segments, max_alternatives)
        logger.debug("Response matched %s shape: %d candidates", shape.name, len(candidates))
        if not candidates:
            raise NoRecognizedSchema(
                f"Could not extract segments from LLM response ({shape.name} shape had no usable entries)."
            )
        return candidates

    raise NoRecognizedSchema(
        f"Could not extract segments from LLM response (unexpected {type(parsed).__name__} value)."
    )
