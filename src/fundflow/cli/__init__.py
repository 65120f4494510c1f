"""
CLI Package

Command-line interface for Fund Flow.
"""

from .main import main

__all__ = ["main"]
