"""Rpage: run headless-browser automation scripts and stream their progress."""

__version__ = "0.3.0"
