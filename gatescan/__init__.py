"""Verification gate: lexical pattern scanning and concurrent project checks."""

__version__ = "0.1.0"
