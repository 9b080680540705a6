"""Episodic video catalog and streaming relay."""

__version__ = "0.1.0"
