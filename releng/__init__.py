"""Commit-driven release decisions and release pipelines."""

__version__ = "0.1.0"
