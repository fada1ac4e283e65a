"""Sage: a bounded tool-calling chat turn processor."""

__version__ = "0.1.0"
