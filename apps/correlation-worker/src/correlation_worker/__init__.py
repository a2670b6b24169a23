"""Correlation worker process."""
