"""Glyco-PAINT: square-based analysis of single-particle tracking data."""

__version__ = "0.3.0"
