"""Self-service group sign-up with live roster updates."""

__version__ = "0.1.0"
