"""Command-line interface for the guitar tuner."""

from .main import cli, main

__all__ = ["cli", "main"]
