"""Produce quality assessment from a single photograph."""

__version__ = "0.1.0"
