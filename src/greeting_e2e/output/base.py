"""
Base Output Formatter
"""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import List

from ..report import VerificationReport


class OutputLevel(IntEnum):
    """Output verbosity levels"""
    QUIET = 0
    NORMAL = 1
    VERBOSE = 2


class BaseFormatter(ABC):
    """Base class for output formatters"""

    def __init__(self, level: OutputLevel = OutputLevel.NORMAL):
        self.level = level

    @abstractmethod
    def phase_event(self, event: str, done: int = 0, total: int = 0, elapsed_ms: int = 0) -> None:
        """Render a runner progress event"""
        pass

    @abstractmethod
    def summary(self, report: VerificationReport) -> None:
        """Format the verification summary"""
        pass

    @abstractmethod
    def timeout(self, outstanding: List[str], timeout_secs: float) -> None:
        """Format a verification timeout"""
        pass
