"""Terminal client for the auto-école e-learning platform."""

__version__ = "0.1.0"
