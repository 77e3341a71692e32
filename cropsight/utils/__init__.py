"""
CropSight utilities module.
"""

from .logging import CropStats, setup_console_logging

__all__ = [
    'CropStats',
    'setup_console_logging',
]
