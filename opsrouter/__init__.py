"""Operational query router for mining haulage questions."""

__version__ = "0.1.0"
