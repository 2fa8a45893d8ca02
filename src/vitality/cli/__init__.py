# Command-line interface
from .coach import cli

__all__ = ['cli']
