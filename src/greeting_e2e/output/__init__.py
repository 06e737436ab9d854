"""
Output Formatters
"""

from .base import BaseFormatter, OutputLevel
from .console import ConsoleFormatter

__all__ = ["BaseFormatter", "ConsoleFormatter", "OutputLevel"]
