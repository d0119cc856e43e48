"""Parsers for model responses."""
