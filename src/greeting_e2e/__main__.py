"""
Greeting E2E CLI

Runs an end-to-end test of the greeting receiver and greeting log API.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from . import __version__
from .clients import GreetingApiClient, GreetingReceiverClient
from .engine import E2ETestRunner
from .generators import create_generator
from .logging_config import setup_logging
from .main import (
    ClientError,
    ConfigError,
    E2EConfig,
    E2EError,
    ValidationError,
    VerificationTimeoutError,
)
from .output import ConsoleFormatter, OutputLevel
from .report import VerificationReport

logger = logging.getLogger("greeting_e2e.cli")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_CLIENT_ERROR = 3
EXIT_TIMEOUT = 4
EXIT_SEND_FAILURES = 5

LOG_LEVEL_ENV = "GREETING_E2E_LOG_LEVEL"

RUNNER_EVENTS = [
    f"{phase}.{stage}"
    for phase in ("generate", "send", "verify")
    for stage in ("started", "progress", "finished")
]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog="greeting-e2e",
        description="Runs e2e test for the greeting receiver and greeting log API",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config", "-c",
        dest="config_path",
        required=True,
        help="Path to config file. If missing, a template file with default values is created.",
    )
    parser.add_argument(
        "--log-level", "-l",
        default=os.getenv(LOG_LEVEL_ENV, "INFO"),
        help=f"Log level (DEBUG, INFO, WARNING, ERROR). Defaults to ${LOG_LEVEL_ENV} or INFO",
    )
    parser.add_argument(
        "--log-file",
        help="Log to file",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )

    return parser.parse_args(argv)


def load_config(path: str) -> E2EConfig:
    """Load and validate the run config"""
    config = E2EConfig.from_yaml(path)
    config.validate()
    logger.info(f"Loaded E2E config: {config.to_dict()}")
    return config


async def run_e2e(config: E2EConfig, formatter: ConsoleFormatter) -> int:
    """Execute one test run and report it"""
    generator = create_generator(config)

    async with GreetingApiClient(
        config.greeting_api_url, timeout=config.request_timeout_secs
    ) as api_client, GreetingReceiverClient(
        config.greeting_receiver_url, timeout=config.request_timeout_secs
    ) as receiver_client:
        runner = E2ETestRunner(config, api_client, receiver_client, generator)
        for event in RUNNER_EVENTS:
            runner.on(event, formatter.phase_event)

        try:
            await generator.initialize()
            registry = await runner.run()
        except VerificationTimeoutError as e:
            formatter.timeout(e.outstanding, config.verification_timeout_secs)
            return EXIT_TIMEOUT
        except ClientError as e:
            formatter.close_open_lines()
            logger.error(f"Client error: {e}")
            return EXIT_CLIENT_ERROR
        except E2EError as e:
            formatter.close_open_lines()
            logger.error(f"E2E error: {e}")
            return EXIT_ERROR
        finally:
            await generator.shutdown()

    report = VerificationReport.from_registry(registry, runner.get_stats())
    formatter.summary(report)
    for task in report.verified + report.unverified:
        logger.debug(f"Task: {task.to_dict()}")

    if config.fail_on_send_errors and (report.send_failures or report.duplicates_rejected):
        logger.error(
            f"{report.send_failures + report.duplicates_rejected} message(s) "
            f"were not accepted by the receiver"
        )
        return EXIT_SEND_FAILURES

    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = parse_args(argv)

    try:
        setup_logging(
            level=args.log_level,
            log_file=args.log_file,
            use_colors=not args.no_color,
        )
    except ValueError as e:
        print(f"E2E config error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        config = load_config(args.config_path)
    except (ConfigError, ValidationError) as e:
        logger.error(f"E2E config error: {e}")
        return EXIT_CONFIG_ERROR

    output_level = OutputLevel.VERBOSE if args.log_level.upper() == "DEBUG" else OutputLevel.NORMAL
    formatter = ConsoleFormatter(level=output_level, use_colors=not args.no_color)

    return asyncio.run(run_e2e(config, formatter))


if __name__ == "__main__":
    sys.exit(main())
