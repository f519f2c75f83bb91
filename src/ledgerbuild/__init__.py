"""Build pipeline for the sheet-backed finance dashboard."""

__version__ = "0.1.0"
