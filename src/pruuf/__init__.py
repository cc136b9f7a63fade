"""Pruuf ping engine: daily check-in generation, completion, and streaks."""

__version__ = "0.1.0"
