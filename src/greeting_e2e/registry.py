"""
Task Registry

In-memory map of receiver message id to the task that produced it. One
registry belongs to one run and is thrown away afterwards.
"""

import logging
from collections.abc import Mapping
from typing import Dict, Iterator, List

from .main import DuplicateMessageIdError, LogEntry, TaskStatus, TestTask

logger = logging.getLogger(__name__)


class TaskRegistry(Mapping):
    """
    Sent tasks keyed by message id.

    Reads go through the Mapping interface; the only mutations are ``add``
    for a task the receiver accepted and ``attach`` for a matching log entry.
    Insertion order is send order.
    """

    def __init__(self):
        self._tasks: Dict[str, TestTask] = {}

    def __getitem__(self, message_id: str) -> TestTask:
        return self._tasks[message_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def __repr__(self) -> str:
        return f"TaskRegistry(tracked={len(self)}, verified={self.verified_count})"

    def add(self, task: TestTask) -> None:
        """
        Track a sent task under its message id.

        Raises:
            DuplicateMessageIdError: the id is already tracked; the existing
                task is kept
        """
        if task.status != TaskStatus.SENT or not task.message_id:
            raise ValueError(f"Only sent tasks can be registered, got {task.status.value}")
        if task.message_id in self._tasks:
            raise DuplicateMessageIdError(task.message_id)
        self._tasks[task.message_id] = task

    def attach(self, entry: LogEntry) -> bool:
        """
        Attach a log entry to the task with the same message id.

        Returns True if the entry verified a task that was not verified
        before. Entries for other traffic and repeats are ignored.
        """
        task = self._tasks.get(entry.message_id)
        if task is None or task.is_verified:
            return False
        task.mark_verified(entry)
        return True

    @property
    def verified_count(self) -> int:
        return sum(1 for task in self._tasks.values() if task.is_verified)

    @property
    def all_verified(self) -> bool:
        return all(task.is_verified for task in self._tasks.values())

    def verified(self) -> List[TestTask]:
        return [task for task in self._tasks.values() if task.is_verified]

    def unverified(self) -> List[TestTask]:
        return [task for task in self._tasks.values() if not task.is_verified]
