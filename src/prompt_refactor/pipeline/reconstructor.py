"""Rebuild a prompt from its segments and the user's chosen alternatives."""

from __future__ import annotations

from typing import Iterable, Mapping

from prompt_refactor.models.refactor import RefactorSegment


def build_modified_prompt(
    base_prompt: str,
    segments: Iterable[RefactorSegment],
    selections: Mapping[str, str],
) -> str:
    """Substitute selected alternatives into ``base_prompt``.

    Segments are applied right to left so that replacing a later span never
    moves the offsets of an earlier one. Selections pointing at unknown
    alternatives are ignored. When nothing applies, ``base_prompt`` itself is
    returned.
    """
    modified = base_prompt
    for seg in sorted(segments, key=lambda s: s.start_index, reverse=True):
        alt_id = selections.get(seg.id)
        if not alt_id:
            continue
        alt = seg.find_alternative(alt_id)
        if alt is None:
            continue
        modified = modified[: seg.start_index] + alt.text + modified[seg.end_index :]
    return modified
