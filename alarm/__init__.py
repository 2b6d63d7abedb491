"""Supervised runner for Wine conformance tests under ``make -jN``."""

__version__ = "0.3.0"
