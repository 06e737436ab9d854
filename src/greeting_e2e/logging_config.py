"""
Logging Configuration

Centralized logging setup for the harness. Called once from the CLI;
library modules only ever do ``logging.getLogger(__name__)``.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class GreetingE2EFormatter(logging.Formatter):
    """Custom formatter with color support and structured output"""

    COLORS = {
        "DEBUG": "\033[36m",      # Cyan
        "INFO": "\033[32m",       # Green
        "WARNING": "\033[33m",    # Yellow
        "ERROR": "\033[31m",      # Red
        "CRITICAL": "\033[35m",   # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True, stream=None):
        super().__init__()
        stream = stream or sys.stderr
        self.use_colors = use_colors and hasattr(stream, "isatty") and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        level = record.levelname

        if self.use_colors:
            color = self.COLORS.get(level, "")
            level = f"{color}{level}{self.RESET}"

        # Format: [TIME] LEVEL [module] message
        parts = [
            f"[{timestamp}]",
            f"{level:8}",
            f"[{record.name}]",
            record.getMessage(),
        ]

        if record.exc_info:
            parts.append(self.formatException(record.exc_info))

        return " ".join(parts)


def parse_log_level(level: str) -> int:
    """Map a level name to its logging constant, rejecting unknown names"""
    name = (level or "").strip().upper()
    if name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {level!r} (expected one of {', '.join(LOG_LEVELS)})")
    return getattr(logging, name)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    use_colors: bool = True,
) -> logging.Logger:
    """
    Configure logging for the harness.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
        use_colors: Enable colored console output

    Returns:
        The configured ``greeting_e2e`` package logger
    """
    root_logger = logging.getLogger("greeting_e2e")
    root_logger.setLevel(parse_log_level(level))

    root_logger.handlers.clear()

    # Logs go to stderr so the progress lines and summary on stdout stay readable
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(GreetingE2EFormatter(use_colors=use_colors, stream=sys.stderr))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(GreetingE2EFormatter(use_colors=False))
        root_logger.addHandler(file_handler)

    # Set level for third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)

    root_logger.debug("Logging configured")
    return root_logger
