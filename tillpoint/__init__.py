"""Tillpoint - cart engine and product catalog for a retail point of sale."""

__version__ = "0.1.0"
