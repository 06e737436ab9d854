"""
Greeting E2E Runner - Core Verification Engine

Drives one test run end to end:

  1. Offset discovery - read the last log entry to find where to start polling
  2. Generation       - produce the whole batch of greetings up front
  3. Dispatch         - send each greeting once, register the receiver's id
  4. Verification     - poll the log forward from the offset until every sent
                        greeting has been seen, under one overall deadline

Send failures are recovered locally and excluded from verification. Offset
discovery and poll failures abort the run. A missed deadline surfaces as
VerificationTimeoutError, never as a partial result.
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from .main import (
    ClientError,
    DuplicateMessageIdError,
    E2EConfig,
    GenerateMessageError,
    GreetingCommand,
    TestTask,
    VerificationTimeoutError,
)
from .registry import TaskRegistry

logger = logging.getLogger(__name__)


class E2ETestRunner:
    """
    Runs generation, dispatch and log verification for one config.

    The api and receiver clients only need the ``get_last_log_entry`` /
    ``get_log_entries`` and ``send`` coroutines, so tests can pass fakes.

    Progress is published as events; register handlers with ``on()``:
        generate.started / generate.progress / generate.finished
        send.started / send.progress / send.finished
        verify.started / verify.progress / verify.finished
    Handlers are called as ``handler(event, done=..., total=..., elapsed_ms=...)``.
    """

    def __init__(
        self,
        config: E2EConfig,
        api_client: Any,
        receiver_client: Any,
        message_generator: Any,
    ):
        self.config = config
        self.api_client = api_client
        self.receiver_client = receiver_client
        self.message_generator = message_generator
        self._event_handlers: Dict[str, List[Callable]] = {}

        self.start_offset: Optional[int] = None
        self.current_offset: Optional[int] = None

        # Statistics
        self._stats = {
            "requested": 0,
            "generated": 0,
            "generation_failures": 0,
            "sent": 0,
            "send_failures": 0,
            "duplicates_rejected": 0,
            "verified": 0,
            "log_pages": 0,
            "log_entries_scanned": 0,
        }
        self._timing: Dict[str, int] = {}

    # =========================================================================
    # Run
    # =========================================================================

    async def run(self) -> TaskRegistry:
        """
        Execute the full test run.

        Returns the registry of sent tasks, all of them verified.

        Raises:
            ClientError: the log API failed during offset discovery or polling
            VerificationTimeoutError: not every sent task showed up in time
        """
        offset = await self.discover_offset()
        tasks = await self.generate_tasks(self.config.num_iterations)
        registry = await self.send_messages(tasks)
        return await self.verify_tasks(registry, offset)

    async def discover_offset(self) -> int:
        """Starting offset: id of the last log entry, 0 for an empty log"""
        last_entry = await self.api_client.get_last_log_entry()
        offset = last_entry.id if last_entry is not None else 0
        self.start_offset = offset
        logger.info(f"Latest greeting log entry: {last_entry}; starting from offset {offset}")
        return offset

    # =========================================================================
    # Generation
    # =========================================================================

    async def generate_tasks(self, num_iterations: int) -> List[TestTask]:
        """
        Generate ``num_iterations`` tasks before anything is sent.

        A failed generation drops that task; the order of the remaining
        tasks follows request order.
        """
        self._stats["requested"] = num_iterations
        start_time = time.monotonic()
        done = 0
        await self._emit_event("generate.started", done=0, total=num_iterations, elapsed_ms=0)

        semaphore = asyncio.Semaphore(self.config.num_clients)

        async def generate_one(index: int) -> Optional[TestTask]:
            nonlocal done
            async with semaphore:
                try:
                    generated = await self.message_generator.generate_message()
                except GenerateMessageError as e:
                    self._stats["generation_failures"] += 1
                    logger.error(f"Failed generating message #{index + 1}: {e}")
                    return None

            task = TestTask(command=GreetingCommand.from_generated(generated))
            done += 1
            await self._emit_event(
                "generate.progress",
                done=done,
                total=num_iterations,
                elapsed_ms=self._elapsed_ms(start_time),
            )
            return task

        results = await asyncio.gather(*(generate_one(i) for i in range(num_iterations)))
        tasks = [task for task in results if task is not None]

        self._stats["generated"] = len(tasks)
        self._timing["generate_ms"] = self._elapsed_ms(start_time)
        await self._emit_event(
            "generate.finished",
            done=len(tasks),
            total=num_iterations,
            elapsed_ms=self._timing["generate_ms"],
        )
        logger.info(f"{len(tasks)}/{num_iterations} messages generated in {self._timing['generate_ms']}ms")
        return tasks

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def send_messages(self, tasks: List[TestTask]) -> TaskRegistry:
        """
        Send every task once and register the accepted ones.

        With ``num_clients == 1`` sends are strictly sequential in generation
        order. Higher values allow that many requests in flight; registry
        writes still happen one at a time on the event loop.
        """
        registry = TaskRegistry()
        total = len(tasks)
        start_time = time.monotonic()
        await self._emit_event("send.started", done=0, total=total, elapsed_ms=0)

        async def send_and_report(task: TestTask) -> None:
            if await self._send_task(task, registry):
                await self._emit_event(
                    "send.progress",
                    done=len(registry),
                    total=total,
                    elapsed_ms=self._elapsed_ms(start_time),
                )

        if self.config.num_clients <= 1:
            for task in tasks:
                await send_and_report(task)
        else:
            semaphore = asyncio.Semaphore(self.config.num_clients)

            async def bounded(task: TestTask) -> None:
                async with semaphore:
                    await send_and_report(task)

            await asyncio.gather(*(bounded(task) for task in tasks))

        self._stats["sent"] = len(registry)
        self._timing["send_ms"] = self._elapsed_ms(start_time)
        await self._emit_event(
            "send.finished",
            done=len(registry),
            total=total,
            elapsed_ms=self._timing["send_ms"],
        )
        logger.info(f"{len(registry)}/{total} messages sent in {self._timing['send_ms']}ms")
        return registry

    async def _send_task(self, task: TestTask, registry: TaskRegistry) -> bool:
        """Send one task; True if it ended up in the registry"""
        try:
            response = await self.receiver_client.send(task.command)
        except ClientError as e:
            task.mark_send_failed(str(e))
            self._stats["send_failures"] += 1
            logger.error(f"Failed sending message {task.external_reference}: {e}")
            return False

        if not response.message_id:
            task.mark_send_failed("receiver returned a blank message id")
            self._stats["send_failures"] += 1
            logger.error(f"Receiver returned a blank message id for {task.external_reference}")
            return False

        task.mark_sent(response.message_id)
        try:
            registry.add(task)
        except DuplicateMessageIdError as e:
            task.error = str(e)
            self._stats["duplicates_rejected"] += 1
            logger.warning(
                f"Receiver returned message id {e.message_id} for "
                f"{task.external_reference}, which is already tracked for "
                f"{registry[e.message_id].external_reference}; ignoring the later task"
            )
            return False
        return True

    # =========================================================================
    # Verification
    # =========================================================================

    async def verify_tasks(self, registry: TaskRegistry, offset: int) -> TaskRegistry:
        """
        Poll the log from ``offset`` until every registered task is verified.

        The whole loop shares one deadline of ``verification_timeout_secs``.
        """
        total = len(registry)
        start_time = time.monotonic()
        self.current_offset = offset
        await self._emit_event("verify.started", done=0, total=total, elapsed_ms=0)

        try:
            await asyncio.wait_for(
                self._poll_log(registry, offset, start_time),
                timeout=self.config.verification_timeout_secs,
            )
        except asyncio.TimeoutError:
            self._record_verification(registry, start_time)
            outstanding = [task.external_reference for task in registry.unverified()]
            logger.error(
                f"Timeout waiting for new log entries: {len(outstanding)}/{total} "
                f"messages unverified after {self.config.verification_timeout_secs}s "
                f"(offset {self.current_offset})"
            )
            raise VerificationTimeoutError(
                f"Timeout waiting for new log entries: {len(outstanding)} of {total} "
                f"messages not found within {self.config.verification_timeout_secs}s",
                outstanding=outstanding,
            ) from None

        self._record_verification(registry, start_time)
        await self._emit_event(
            "verify.finished",
            done=registry.verified_count,
            total=total,
            elapsed_ms=self._timing["verify_ms"],
        )
        logger.info(f"{registry.verified_count}/{total} messages verified in {self._timing['verify_ms']}ms")
        return registry

    async def _poll_log(self, registry: TaskRegistry, offset: int, start_time: float) -> None:
        """The poll-and-match loop; runs until nothing is pending"""
        current_offset = offset
        pending = len(registry) - registry.verified_count
        limit = self.config.greeting_log_limit

        while pending > 0:
            entries = await self.api_client.get_log_entries(current_offset + 1, limit)
            self._stats["log_pages"] += 1

            if not entries:
                await asyncio.sleep(self.config.poll_interval_secs)
                continue

            logger.debug(f"Found {len(entries)} entries from offset {current_offset}")
            page_start = current_offset

            for entry in entries:
                self._stats["log_entries_scanned"] += 1
                if registry.attach(entry):
                    pending -= 1
                    await self._emit_event(
                        "verify.progress",
                        done=len(registry) - pending,
                        total=len(registry),
                        elapsed_ms=self._elapsed_ms(start_time),
                    )
                # Advance on every entry, matched or not, so unrelated traffic
                # in the log cannot stall the loop
                current_offset = max(current_offset, entry.id)

            self.current_offset = current_offset

            if current_offset == page_start:
                logger.warning(
                    f"Log page after offset {page_start} held no newer entries; backing off"
                )
                await asyncio.sleep(self.config.poll_interval_secs)

    def _record_verification(self, registry: TaskRegistry, start_time: float) -> None:
        self._stats["verified"] = registry.verified_count
        self._timing["verify_ms"] = self._elapsed_ms(start_time)

    # =========================================================================
    # Event System
    # =========================================================================

    def on(self, event: str, handler: Callable) -> None:
        """Register event handler"""
        if event not in self._event_handlers:
            self._event_handlers[event] = []
        self._event_handlers[event].append(handler)

    async def _emit_event(self, event: str, **kwargs) -> None:
        """Call registered handlers; handler errors never break the run"""
        for handler in self._event_handlers.get(event, []):
            try:
                if inspect.iscoroutinefunction(handler):
                    await handler(event, **kwargs)
                else:
                    handler(event, **kwargs)
            except Exception as e:
                logger.error(f"Event handler error for {event}: {e}")

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> Dict[str, Any]:
        """Counters and phase timings for the current run"""
        return {
            **self._stats,
            "start_offset": self.start_offset,
            "current_offset": self.current_offset,
            "timing": dict(self._timing),
        }

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.monotonic() - start_time) * 1000)
