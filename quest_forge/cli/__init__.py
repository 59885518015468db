"""
Command line tools for dialogue datasets
"""

from .commands import cli

__all__ = ["cli"]
