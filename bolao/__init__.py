"""Number pool contests: scoring, prize categories and revenue split."""

__version__ = "0.1.0"
