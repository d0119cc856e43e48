"""Utility to extract the JSON object from LLM responses."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

from prompt_refactor.errors import MalformedJson, NoJsonFound, UnbalancedJson

# An opening tag with no closing tag swallows the rest of the text.
_REASONING_BLOCKS = (
    re.compile(r"<think>.*?(?:</think>|\Z)", re.IGNORECASE | re.DOTALL),
    re.compile(r"<reasoning>.*?(?:</reasoning>|\Z)", re.IGNORECASE | re.DOTALL),
)

# ```json, ```python, ``` ... a label only counts when it ends the fence's line
_FENCE_MARKER = re.compile(r"```(?:[A-Za-z][\w+.-]*[ \t]*(?=\r?\n|\Z))?\s*")


def strip_artifacts(raw: str) -> str:
    """Remove reasoning blocks and markdown fence markers, then trim."""
    text = raw
    for pattern in _REASONING_BLOCKS:
        text = pattern.sub("", text)
    text = _FENCE_MARKER.sub("", text)
    return text.strip()


@dataclass
class ScanState:
    """Brace-matching state machine used by :func:`find_json_bounds`.

    Transitions, checked in order for every character:

    ==================  ===================================
    escape_next         clear it, consume the character
    ``\\``              set escape_next
    ``"``               toggle in_string
    in_string           ignore the character
    ``{``               depth += 1
    ``}``               depth -= 1, closed when depth == 0
    ==================  ===================================
    """

    depth: int = 0
    in_string: bool = False
    escape_next: bool = False

    def step(self, ch: str) -> bool:
        """Consume one character. Returns True when the outer object closes."""
        if self.escape_next:
            self.escape_next = False
            return False
        if ch == "\\":
            self.escape_next = True
            return False
        if ch == '"':
            self.in_string = not self.in_string
            return False
        if self.in_string:
            return False
        if ch == "{":
            self.depth += 1
        elif ch == "}":
            self.depth -= 1
            return self.depth == 0
        return False


def find_json_bounds(text: str) -> tuple[int, int] | None:
    """Return inclusive (start, end) offsets of the first balanced object.

    Scanning starts at the first '{'. Returns None when there is no '{' or
    the object never closes.
    """
    start = text.find("{")
    if start == -1:
        return None

    state = ScanState()
    for i in range(start, len(text)):
        if state.step(text[i]):
            return start, i
    return None


def extract_json_object(raw: str) -> dict | list:
    """Strip artifacts, locate the outer object and decode it.

    Raises:
        NoJsonFound: no '{' left after stripping.
        UnbalancedJson: the object never closes.
        MalformedJson: the located span is not valid JSON.
    """
    text = strip_artifacts(raw)
    if "{" not in text:
        raise NoJsonFound(raw)

    bounds = find_json_bounds(text)
    if bounds is None:
        raise UnbalancedJson(text)

    start, end = bounds
    candidate = text[start : end + 1]
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        raise MalformedJson(candidate, reason=e.msg) from e
