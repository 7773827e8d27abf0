"""Batch-to-order link engine."""

__version__ = "1.0.0"
