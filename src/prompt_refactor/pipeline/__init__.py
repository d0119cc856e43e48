"""Extraction pipeline, refactor agent and session."""
