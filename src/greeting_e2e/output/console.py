"""
Console Output Formatter

Progress bars for the run phases and the final verification summary.
"""

import sys
from typing import Dict, List, Optional, TextIO

from .base import BaseFormatter, OutputLevel
from ..report import VerificationReport


class ConsoleFormatter(BaseFormatter):
    """
    Console formatter with colored output.

    On a TTY each phase redraws one progress line in place; otherwise only
    the finished line of each phase is printed.
    """

    COLORS = {
        "reset": "\033[0m",
        "bold": "\033[1m",
        "dim": "\033[2m",
        "green": "\033[32m",
        "yellow": "\033[33m",
        "red": "\033[31m",
        "blue": "\033[34m",
        "cyan": "\033[36m",
    }

    # phase -> (label, verb, bar color)
    PHASES = {
        "generate": ("Generating messages", "generated", "blue"),
        "send": ("Sending messages", "sent", "yellow"),
        "verify": ("Verifying messages", "verified", "green"),
    }

    BAR_WIDTH = 30

    def __init__(
        self,
        level: OutputLevel = OutputLevel.NORMAL,
        use_colors: bool = True,
        stream: Optional[TextIO] = None,
    ):
        super().__init__(level)
        self.stream = stream or sys.stdout
        self.is_tty = hasattr(self.stream, "isatty") and self.stream.isatty()
        self.use_colors = use_colors and self.is_tty
        self._open_line: Dict[str, bool] = {}

    def _c(self, color: str, text: str) -> str:
        """Apply color to text"""
        if self.use_colors:
            return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"
        return text

    def _print(self, text: str = "") -> None:
        print(text, file=self.stream)

    def _bar(self, done: int, total: int) -> str:
        filled = self.BAR_WIDTH if total <= 0 else int(self.BAR_WIDTH * min(done, total) / total)
        return "█" * filled + " " * (self.BAR_WIDTH - filled)

    def render_phase(self, phase: str, done: int, total: int, elapsed_ms: int) -> str:
        label, verb, color = self.PHASES[phase]
        return (
            f"{self._c('bold', f'{label:<20}')}"
            f"▕{self._c(color, self._bar(done, total))}▏"
            f"{done}/{total} {verb} in {elapsed_ms / 1000:.1f}s"
        )

    def phase_event(self, event: str, done: int = 0, total: int = 0, elapsed_ms: int = 0) -> None:
        """Render a runner progress event"""
        if self.level < OutputLevel.NORMAL:
            return

        phase, _, stage = event.partition(".")
        if phase not in self.PHASES:
            return

        line = self.render_phase(phase, done, total, elapsed_ms)

        if stage == "finished":
            if self.is_tty:
                self.stream.write(f"\r{line}\n")
                self.stream.flush()
            else:
                self._print(line)
            self._open_line[phase] = False
        elif self.is_tty:
            self.stream.write(f"\r{line}")
            self.stream.flush()
            self._open_line[phase] = True

    def close_open_lines(self) -> None:
        """Terminate a progress line left open by an aborted phase"""
        if any(self._open_line.values()):
            self.stream.write("\n")
            self.stream.flush()
            self._open_line.clear()

    def summary(self, report: VerificationReport) -> None:
        """Format the verification summary"""
        self.close_open_lines()

        self._print()
        self._print(self._c("bold", "═" * 50))
        self._print(self._c("bold", "  VERIFICATION SUMMARY"))
        self._print(self._c("bold", "═" * 50))

        verified_color = "green" if report.all_verified else "red"
        self._print(f"\n  {self._c('bold', 'Messages:')}")
        self._print(f"    Requested:          {report.requested}")
        self._print(f"    Tracked:            {report.tracked}")
        self._print(
            f"    Verified:           "
            f"{self._c(verified_color, f'{report.verified_count} of {report.tracked}')}"
        )
        self._print(f"    Unverified:         {len(report.unverified)}")

        failures = report.generation_failures + report.send_failures + report.duplicates_rejected
        if failures or self.level >= OutputLevel.VERBOSE:
            self._print(f"\n  {self._c('bold', 'Failures:')}")
            self._print(f"    Generation:         {self._c('yellow', str(report.generation_failures))}")
            self._print(f"    Send:               {self._c('red', str(report.send_failures))}")
            self._print(f"    Duplicate ids:      {self._c('yellow', str(report.duplicates_rejected))}")

        self._print(f"\n  {self._c('bold', 'Log:')}")
        self._print(f"    Start offset:       {report.start_offset}")
        self._print(f"    End offset:         {report.end_offset}")
        if report.avg_latency_ms is not None:
            self._print(f"    Avg latency:        {report.avg_latency_ms}ms")

        if self.level >= OutputLevel.VERBOSE:
            self._print(f"\n  {self._c('bold', 'Tasks:')}")
            for task in report.verified + report.unverified:
                sent = task.sent_at.isoformat() if task.sent_at else "-"
                logged = task.log_entry.created.isoformat() if task.log_entry else "-"
                mark = self._c("green", "✓") if task.is_verified else self._c("red", "✗")
                self._print(f"    {mark} {task.external_reference}  sent {sent}  logged {logged}")

        self._print()
        self._print(self._c("bold", "═" * 50))

    def timeout(self, outstanding: List[str], timeout_secs: float) -> None:
        """Format a verification timeout"""
        self.close_open_lines()

        self._print(
            f"{self._c('red', '✗ VERIFICATION TIMEOUT')} "
            f"{len(outstanding)} message(s) not in the log after {timeout_secs}s"
        )
        if self.level >= OutputLevel.VERBOSE:
            for reference in outstanding:
                self._print(f"    {self._c('dim', '-')} {reference}")
