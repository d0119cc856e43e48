"""Helpers for pulling JSON out of model output."""
