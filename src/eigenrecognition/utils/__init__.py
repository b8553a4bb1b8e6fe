"""
Utility package for the eigenface recognition system.
"""

from .log import get_logger, setup_logging

__all__ = [
    'get_logger',
    'setup_logging'
]
