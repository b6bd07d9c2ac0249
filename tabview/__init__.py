"""Query pipeline for browser tab records."""

__version__ = "0.1.0"
