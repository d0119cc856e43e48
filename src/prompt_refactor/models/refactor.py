"""Pydantic models for refactor suggestions anchored in a prompt."""

from __future__ import annotations

from pydantic import BaseModel, model_validator

# segment id -> chosen alternative id
SelectedAlternatives = dict[str, str]


class Alternative(BaseModel):
    """One replacement text offered for a segment."""

    id: str
    text: str

    model_config = {"frozen": True}


class RefactorSegment(BaseModel):
    """A phrase of the original prompt with its offsets and alternatives."""

    id: str
    original: str
    start_index: int
    end_index: int  # exclusive
    reason: str = ""
    alternatives: tuple[Alternative, ...] = ()

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_offsets(self) -> RefactorSegment:
        if not 0 <= self.start_index < self.end_index:
            raise ValueError(
                f"invalid offsets [{self.start_index}, {self.end_index}) for segment {self.id}"
            )
        if self.end_index - self.start_index != len(self.original):
            raise ValueError(f"offsets of segment {self.id} do not span its original text")
        ids = [alt.id for alt in self.alternatives]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate alternative ids in segment {self.id}")
        return self

    def find_alternative(self, alternative_id: str) -> Alternative | None:
        for alt in self.alternatives:
            if alt.id == alternative_id:
                return alt
        return None


class RefactorResult(BaseModel):
    """Segments recovered for one prompt by a single extraction."""

    original_prompt: str
    segments: tuple[RefactorSegment, ...]

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_anchors(self) -> RefactorResult:
        seen: set[str] = set()
        for seg in self.segments:
            if seg.id in seen:
                raise ValueError(f"duplicate segment id {seg.id}")
            seen.add(seg.id)
            if seg.end_index > len(self.original_prompt):
                raise ValueError(f"segment {seg.id} extends past the end of the prompt")
            if self.original_prompt[seg.start_index : seg.end_index] != seg.original:
                raise ValueError(f"segment {seg.id} does not match the prompt text at its offsets")
        return self

    def get_segment(self, segment_id: str) -> RefactorSegment | None:
        for seg in self.segments:
            if seg.id == segment_id:
                return seg
        return None

    def ordered_segments(self) -> list[RefactorSegment]:
        """Segments by ascending start offset, for inline rendering."""
        return sorted(self.segments, key=lambda s: s.start_index)
