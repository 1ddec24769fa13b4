"""Scheme prompt with rewindable terminal output and replayed input."""

__all__ = [
    "cli",
    "control",
    "driver",
    "lang",
    "replay",
    "runtime",
    "terminal",
]

__version__ = "0.1.0"
