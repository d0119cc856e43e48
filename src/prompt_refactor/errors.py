"""Exception types raised by the refactor pipeline and its collaborators."""

from __future__ import annotations


def _preview(text: str, limit: int = 200) -> str:
    text = text.strip()
    return text if len(text) <= limit else text[:limit] + "..."


class ExtractionError(ValueError):
    """Model output could not be turned into refactor segments."""


class NoJsonFound(ExtractionError):
    def __init__(self, text: str = ""):
        super().__init__(f"No JSON found in LLM response: {_preview(text)!r}")


class UnbalancedJson(ExtractionError):
    def __init__(self, text: str = ""):
        super().__init__(f"Unbalanced JSON in LLM response: {_preview(text)!r}")


class MalformedJson(ExtractionError):
    def __init__(self, text: str = "", reason: str = ""):
        detail = f" ({reason})" if reason else ""
        super().__init__(f"Malformed JSON in LLM response{detail}: {_preview(text)!r}")


class NoRecognizedSchema(ExtractionError):
    """Decoded JSON matched neither response shape or yielded no candidates."""


class NoAnchorableSegments(ExtractionError):
    """No suggested phrase occurs verbatim in the original prompt."""


class PersistenceError(RuntimeError):
    """The prompt store could not read or write a record."""


class SessionStateError(RuntimeError):
    """A refactor session operation was called in the wrong phase."""
