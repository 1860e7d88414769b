"""Glyco-PAINT command line interface."""
