"""Command-line interface for XML/JSON conversion.

Provides the ``openspeleo-xml`` tool with decode, encode and round-trip
check commands.
"""

from .main import main

__all__ = ["main"]
