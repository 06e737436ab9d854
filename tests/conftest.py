"""
Shared fixtures and fakes for the greeting E2E tests
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

import pytest

from greeting_e2e.main import (
    ClientError,
    E2EConfig,
    GeneratedMessage,
    GenerateMessageError,
    GreetingCommand,
    GreetingResponse,
    LogEntry,
)


def make_entry(entry_id: int, message_id: str) -> LogEntry:
    return LogEntry(
        id=entry_id,
        greeting_id=entry_id,
        message_id=message_id,
        created=datetime(2026, 1, 1, 12, 0, entry_id % 60, tzinfo=timezone.utc),
    )


class FakeGreetingService:
    """
    In-memory receiver + log API.

    Every accepted greeting is appended to the log unless ``write_log`` is
    off. ``noise_per_send`` unrelated entries are appended before each
    greeting's own entry, as if other clients shared the log.
    """

    def __init__(
        self,
        existing_entries: int = 0,
        fail_sends: Optional[Set[int]] = None,
        write_log: bool = True,
        noise_per_send: int = 0,
        duplicate_ids: bool = False,
    ):
        self.log: List[LogEntry] = [make_entry(i + 1, f"old-{i + 1}") for i in range(existing_entries)]
        self.fail_sends = fail_sends or set()
        self.write_log = write_log
        self.noise_per_send = noise_per_send
        self.duplicate_ids = duplicate_ids

        self.sent: List[GreetingCommand] = []
        self.send_calls = 0
        self.last_calls = 0
        self.log_queries: List[tuple] = []
        self.last_error: Optional[Exception] = None
        self.poll_error: Optional[Exception] = None

    def _append(self, message_id: str) -> None:
        self.log.append(make_entry(len(self.log) + 1, message_id))

    async def send(self, greeting: GreetingCommand) -> GreetingResponse:
        index = self.send_calls
        self.send_calls += 1
        if index in self.fail_sends:
            raise ClientError("greeting-receiver returned HTTP 500 for /greeting", status_code=500)

        self.sent.append(greeting)
        message_id = "M1" if self.duplicate_ids else f"M{len(self.sent)}"
        if self.write_log:
            for n in range(self.noise_per_send):
                self._append(f"other-{index}-{n}")
            self._append(message_id)
        return GreetingResponse(message_id=message_id)

    async def get_last_log_entry(self) -> Optional[LogEntry]:
        self.last_calls += 1
        if self.last_error:
            raise self.last_error
        return self.log[-1] if self.log else None

    async def get_log_entries(self, offset: int, limit: int) -> List[LogEntry]:
        self.log_queries.append((offset, limit))
        if self.poll_error:
            raise self.poll_error
        return [entry for entry in self.log if entry.id >= offset][:limit]

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None


class ScriptedLogApi:
    """Log API that serves a fixed sequence of pages, then empty pages"""

    def __init__(self, pages: List[List[LogEntry]], last_entry: Optional[LogEntry] = None):
        self.pages = list(pages)
        self.last_entry = last_entry
        self.log_queries: List[tuple] = []

    async def get_last_log_entry(self) -> Optional[LogEntry]:
        return self.last_entry

    async def get_log_entries(self, offset: int, limit: int) -> List[LogEntry]:
        self.log_queries.append((offset, limit))
        if self.pages:
            return self.pages.pop(0)
        return []


class ScriptedReceiver:
    """Receiver that hands out a fixed list of message ids"""

    def __init__(self, message_ids: List[str]):
        self.message_ids = list(message_ids)

    async def send(self, greeting: GreetingCommand) -> GreetingResponse:
        return GreetingResponse(message_id=self.message_ids.pop(0))


class FakeGenerator:
    """Generator that fails on the given call indexes"""

    name = "fake"

    def __init__(self, fail_on: Optional[Set[int]] = None):
        self.fail_on = fail_on or set()
        self.calls = 0

    async def initialize(self) -> None:
        pass

    async def generate_message(self) -> GeneratedMessage:
        index = self.calls
        self.calls += 1
        if index in self.fail_on:
            raise GenerateMessageError("model returned garbage")
        return GeneratedMessage(to=f"to-{index}", from_="sender", heading="hello", message=f"body {index}")

    async def shutdown(self) -> None:
        pass


@pytest.fixture
def fast_config():
    """Config with short timings for the verification loop"""

    def _make(**overrides) -> E2EConfig:
        values: Dict = {
            "num_iterations": 1,
            "greeting_log_limit": 10,
            "verification_timeout_secs": 1.0,
            "poll_interval_secs": 0.01,
        }
        values.update(overrides)
        return E2EConfig(**values)

    return _make


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers installed by setup_logging() in CLI tests"""
    yield
    package_logger = logging.getLogger("greeting_e2e")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
