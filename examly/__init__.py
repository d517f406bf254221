"""Examly: AI study-material generation from uploaded course documents."""

__version__ = "0.1.0"
