"""Query understanding and multi-source search for government services."""

__version__ = "0.1.0"
