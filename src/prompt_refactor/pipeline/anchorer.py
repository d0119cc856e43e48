"""Anchor candidate phrases to exact offsets in the original prompt."""

from __future__ import annotations

import logging
import uuid
from enum import Enum
from typing import Callable, Iterable

from prompt_refactor.models.refactor import Alternative, RefactorSegment
from prompt_refactor.parsers.segment_parser import CandidateSegment

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]


def new_id() -> str:
    return str(uuid.uuid4())


class OverlapPolicy(str, Enum):
    """What to do with a segment whose range overlaps an earlier one."""

    DROP = "drop"
    KEEP = "keep"


def anchor(
    candidates: Iterable[CandidateSegment],
    prompt: str,
    *,
    id_factory: IdFactory = new_id,
    overlap_policy: OverlapPolicy = OverlapPolicy.DROP,
) -> list[RefactorSegment]:
    """Turn candidates into segments located at their first exact occurrence.

    Candidates that do not occur verbatim in ``prompt`` are skipped. Output
    keeps candidate order; it is not sorted by offset.

    ``id_factory`` must return a fresh id on every call; a repeated id raises
    ``ValueError``.
    """
    seen_ids: set[str] = set()

    def next_id() -> str:
        value = id_factory()
        if value in seen_ids:
            raise ValueError(f"id_factory returned duplicate id {value!r}")
        seen_ids.add(value)
        return value

    segments: list[RefactorSegment] = []
    for cand in candidates:
        if not cand.original:
            continue
        start = prompt.find(cand.original)
        if start == -1:
            logger.debug("Dropping unanchored phrase %r", cand.original)
            continue
        end = start + len(cand.original)

        if overlap_policy is OverlapPolicy.DROP and any(
            start < seg.end_index and seg.start_index < end for seg in segments
        ):
            logger.debug("Dropping phrase %r overlapping an earlier segment", cand.original)
            continue

        segments.append(
            RefactorSegment(
                id=next_id(),
                original=cand.original,
                start_index=start,
                end_index=end,
                alternatives=tuple(
                    Alternative(id=next_id(), text=text) for text in cand.alternatives
                ),
            )
        )
    return segments
