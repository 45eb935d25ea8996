# sql_to_mysql/utilities/worker.py
from __future__ import annotations

import threading
import time
from contextlib import ExitStack
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..common.exceptions import RowError
from ..common.helpers import format_duration
from ..common.logger import logger
from ..etl.extract import Extractor
from ..etl.load import Loader


class TaskState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class MigrationTask:
    """One table copy. Moves Pending -> Running -> Succeeded/Failed, never back."""

    table_name: str
    state: TaskState = TaskState.PENDING
    error: Optional[BaseException] = None
    elapsed: float = 0.0
    rows: int = 0
    _started_at: Optional[float] = None

    @property
    def done(self) -> bool:
        return self.state in (TaskState.SUCCEEDED, TaskState.FAILED)

    def start(self) -> None:
        if self.state is not TaskState.PENDING:
            raise RuntimeError(f"task {self.table_name} cannot start from {self.state.value}")
        self.state = TaskState.RUNNING
        self._started_at = time.monotonic()

    def _finish(self, state: TaskState) -> None:
        if self.done:
            raise RuntimeError(f"task {self.table_name} already {self.state.value}")
        if self._started_at is not None:
            self.elapsed = time.monotonic() - self._started_at
        self.state = state

    def succeed(self, rows: int) -> None:
        self._finish(TaskState.SUCCEEDED)
        self.rows = rows

    def fail(self, error: BaseException) -> None:
        self._finish(TaskState.FAILED)
        self.error = error


class SlotPool:
    """
    Fixed number of permits bounding how many table copies run at once.
    acquire() blocks while every permit is held.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._semaphore = threading.BoundedSemaphore(capacity)
        self._lock = threading.Lock()
        self.in_use = 0
        self.peak = 0

    def acquire(self) -> None:
        self._semaphore.acquire()
        with self._lock:
            self.in_use += 1
            self.peak = max(self.peak, self.in_use)

    def release(self) -> None:
        with self._lock:
            if self.in_use == 0:
                raise ValueError("release() without a matching acquire()")
            self.in_use -= 1
        self._semaphore.release()


def copy_table(extractor: Extractor, loader: Loader, table: str) -> int:
    """Streams every row of one source table into the target table of the same name."""
    with ExitStack() as stack:
        try:
            columns, rows = stack.enter_context(extractor.open_rows(table))
        except Exception as e:
            raise RowError(table, 0, e) from e
        return loader.insert_rows(table, len(columns), rows)


def run_table_task(task: MigrationTask, extractor: Extractor, loader: Loader) -> MigrationTask:
    """Runs one task to a terminal state. Table-local errors end up on the task, not raised."""
    logger.info(f"Starting migration for table: {task.table_name}")
    task.start()
    try:
        rows = copy_table(extractor, loader, task.table_name)
    except Exception as e:
        task.fail(e)
        logger.error(f"[METRICS] table={task.table_name} duration={task.elapsed:.2f}s status=FAILED error={e}")
    else:
        task.succeed(rows)
        logger.success(
            f"End migration data for table {task.table_name}. rows={rows} "
            f"Total Time: {format_duration(task.elapsed)}"
        )
    return task
