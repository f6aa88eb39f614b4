"""Simple Pendant - WHB04B-4 jog pendant bridge for GRBL 1.1.

Turns the pendant's dial, selector switches and buttons into GRBL jog
and utility commands and mirrors machine position on its display.
"""

__version__ = "0.1.0"
__author__ = "Bob Kolbasowski"

from .driver import PendantDriver
from .utils import Settings

__all__ = [
    "PendantDriver",
    "Settings",
]
