"""Truebit task publishing and submission tools."""

__version__ = "0.1.0"
