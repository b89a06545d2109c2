"""Pull-request history and review context for a single repository file."""

__version__ = "0.1.0"
