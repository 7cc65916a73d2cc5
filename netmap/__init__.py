"""netmap - layout service for personal network diagrams."""

__version__ = "0.1.0"
