# sql_to_mysql/utilities/etl_manager.py
from __future__ import annotations

import queue
import threading
import time
from enum import Enum
from typing import Iterable, List, Optional

from ..common.exceptions import AggregateFailure
from ..common.helpers import format_duration
from ..common.logger import logger
from ..etl.extract import Extractor
from ..etl.load import Loader
from .progress import Spinner
from .worker import MigrationTask, SlotPool, TaskState, run_table_task


class FailurePolicy(str, Enum):
    """
    What the aggregator does once a table copy has failed:
      - ABORT   : raise at once; in-flight copies are left running
      - DRAIN   : stop scheduling, wait for in-flight copies, then raise
      - CONTINUE: schedule everything, wait for all, raise with every failure
    """

    ABORT = "abort"
    DRAIN = "drain"
    CONTINUE = "continue"


class ResultAggregator:
    """Collects exactly one outcome per scheduled task, in arrival order."""

    def __init__(self, policy: FailurePolicy = FailurePolicy.ABORT) -> None:
        self.policy = FailurePolicy(policy)
        self._outcomes: "queue.Queue[MigrationTask]" = queue.Queue()
        self.scheduled = 0
        self.collected: List[MigrationTask] = []
        self.failures: List[MigrationTask] = []

    # called from the scheduling thread
    def register(self, task: MigrationTask) -> None:
        self.scheduled += 1

    # called from worker threads
    def report(self, task: MigrationTask) -> None:
        self._outcomes.put(task)

    @property
    def pending(self) -> int:
        return self.scheduled - len(self.collected)

    @property
    def succeeded(self) -> List[MigrationTask]:
        return [t for t in self.collected if t.state is TaskState.SUCCEEDED]

    def should_stop_scheduling(self) -> bool:
        return bool(self.failures) and self.policy is not FailurePolicy.CONTINUE

    def _observe(self, task: MigrationTask) -> None:
        self.collected.append(task)
        if task.state is TaskState.SUCCEEDED:
            return
        self.failures.append(task)
        logger.error(f"Table {task.table_name} failed: {task.error}")
        if self.policy is FailurePolicy.ABORT:
            raise AggregateFailure([task], scheduled=self.scheduled)

    def poll(self) -> None:
        """Consume whatever outcomes have arrived without blocking."""
        while True:
            try:
                task = self._outcomes.get_nowait()
            except queue.Empty:
                return
            self._observe(task)

    def wait(self) -> None:
        """Block until every scheduled task has reported."""
        while self.pending > 0:
            self._observe(self._outcomes.get())

    def finish(self) -> List[MigrationTask]:
        if self.failures:
            raise AggregateFailure(self.failures, scheduled=self.scheduled)
        return list(self.collected)


class CopyEngine:
    """
    Runs one thread per table, at most `capacity` at a time. Both pools are
    shared by every thread; each thread borrows its own connections.
    """

    def __init__(
        self,
        extractor: Extractor,
        loader: Loader,
        *,
        capacity: int = 150,
        policy: FailurePolicy = FailurePolicy.ABORT,
    ) -> None:
        self.extractor = extractor
        self.loader = loader
        self.slots = SlotPool(capacity)
        self.aggregator = ResultAggregator(policy)
        self.tasks: List[MigrationTask] = []

    def _run(self, task: MigrationTask) -> None:
        try:
            run_table_task(task, self.extractor, self.loader)
        except BaseException as e:
            # run_table_task keeps table errors on the task; this is anything else
            if not task.done:
                task.fail(e)
            raise
        finally:
            self.slots.release()
            self.aggregator.report(task)

    def schedule(self, table: str) -> MigrationTask:
        task = MigrationTask(table)
        self.slots.acquire()
        self.tasks.append(task)
        self.aggregator.register(task)
        try:
            threading.Thread(target=self._run, args=(task,), name=f"copy-{table}", daemon=True).start()
        except BaseException as e:
            task.fail(e)
            self.slots.release()
            self.aggregator.report(task)
        return task

    def run(self, tables: Iterable[str]) -> List[MigrationTask]:
        try:
            for table in tables:
                self.aggregator.poll()
                if self.aggregator.should_stop_scheduling():
                    logger.warning("A table failed; no further tables will be scheduled.")
                    break
                self.schedule(table)
        finally:
            # hand the enumeration cursor back even when we stop early
            close = getattr(tables, "close", None)
            if close is not None:
                close()
        self.aggregator.wait()
        return self.aggregator.finish()


class ETLManager:
    """
    Two sequential phases against already-open pools:
      1. (optional) schema: one CREATE TABLE per source table
      2. data: every non-excluded table copied by the CopyEngine
    """

    def __init__(
        self,
        extractor: Extractor,
        loader: Loader,
        *,
        concurrency: int = 150,
        policy: FailurePolicy = FailurePolicy.ABORT,
        spinner: Optional[Spinner] = None,
    ) -> None:
        self.extractor = extractor
        self.loader = loader
        self.concurrency = concurrency
        self.policy = FailurePolicy(policy)
        self.spinner = spinner if spinner is not None else Spinner()
        self.engine: Optional[CopyEngine] = None

    def migrate_schema(self) -> int:
        schema = self.extractor.get_table_schema()
        return self.loader.create_tables(schema)

    def migrate_data(self) -> List[MigrationTask]:
        self.engine = CopyEngine(self.extractor, self.loader, capacity=self.concurrency, policy=self.policy)
        with self.loader.foreign_key_checks_disabled():
            tasks = self.engine.run(self.extractor.iter_tables())
        logger.info(f"{len(tasks)} table(s) copied.")
        return tasks

    def start_migration(self, migrate_schema: bool = False) -> List[MigrationTask]:
        with self.spinner:
            if migrate_schema:
                start = time.monotonic()
                logger.info("Running schema migration...")
                created = self.migrate_schema()
                logger.success(
                    f"Schema migration completed in {format_duration(time.monotonic() - start)} "
                    f"({created} table(s) created)"
                )

            start = time.monotonic()
            logger.info("Running data migration...")
            tasks = self.migrate_data()
            logger.success(f"Data migration completed in {format_duration(time.monotonic() - start)}")
        logger.success("Done 🥳.")
        return tasks
