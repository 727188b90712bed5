"""Automated beets import pipeline for a downloads folder."""

__version__ = "0.1.0"
