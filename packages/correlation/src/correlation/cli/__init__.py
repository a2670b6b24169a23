"""Correlation command-line interface."""
