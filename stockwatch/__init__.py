"""Stock alert evaluation and technical-indicator engine."""

__version__ = "0.1.0"
