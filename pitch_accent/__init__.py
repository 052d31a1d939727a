"""Pitch analysis and pitch-accent scoring engine."""

__version__ = "0.1.0"
