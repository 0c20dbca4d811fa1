"""Distributed evaluation of arithmetic expressions over HTTP-polling workers."""

__version__ = "0.1.0"
