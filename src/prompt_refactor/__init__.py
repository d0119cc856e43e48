"""Recover and apply LLM rephrasing suggestions for image prompts."""

__version__ = "0.1.0"
