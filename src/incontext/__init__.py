"""incontext: navigable code pointers embedded in text."""

__version__ = "0.1.0"
