"""Entry point turning raw model text into an anchored refactor result."""

from __future__ import annotations

import logging

from prompt_refactor.errors import NoAnchorableSegments
from prompt_refactor.models.refactor import RefactorResult
from prompt_refactor.parsers.segment_parser import normalize
from prompt_refactor.pipeline.anchorer import IdFactory, OverlapPolicy, anchor, new_id
from prompt_refactor.utils.json_parser import extract_json_object

logger = logging.getLogger(__name__)


def extract_segments(
    raw_model_text: str,
    original_prompt: str,
    *,
    id_factory: IdFactory = new_id,
    overlap_policy: OverlapPolicy = OverlapPolicy.DROP,
) -> RefactorResult:
    """Strip, locate, decode, normalize and anchor in one call.

    Either returns a result with at least one segment or raises a subclass
    of :class:`~prompt_refactor.errors.ExtractionError`. An ``id_factory``
    that repeats ids is a caller bug and raises a plain ``ValueError``.
    """
    parsed = extract_json_object(raw_model_text)
    candidates = normalize(parsed)
    segments = anchor(
        candidates, original_prompt, id_factory=id_factory, overlap_policy=overlap_policy
    )
    if not segments:
        raise NoAnchorableSegments(
            f"None of the {len(candidates)} suggested phrases occur in the prompt."
        )
    logger.debug("Anchored %d of %d candidates", len(segments), len(candidates))
    return RefactorResult(original_prompt=original_prompt, segments=tuple(segments))
