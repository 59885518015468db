"""
Web session API for the dialog system
"""

from .app import create_app

__all__ = ["create_app"]
