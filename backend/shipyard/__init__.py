"""Shipyard: build/deploy pipeline runner and demo service."""

__version__ = "0.1.0"
__author__ = "Shipyard Team"

__all__ = ["__version__", "__author__"]
