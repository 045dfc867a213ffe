"""Differential image/text comparison of URL pairs under load."""

__version__ = "0.3.0"
