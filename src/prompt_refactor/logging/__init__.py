"""Usage logging and cost tracking."""
