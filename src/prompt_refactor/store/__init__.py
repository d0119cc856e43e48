"""Persistence for prompts and versions."""
