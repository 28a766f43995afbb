"""EcoStep carbon accounting and achievement service."""

__version__ = "0.1.0"
