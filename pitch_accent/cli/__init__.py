"""Command-line interface for pitch_accent."""

from .main import main, run

__all__ = ["main", "run"]
