"""Correlation HTTP API."""
