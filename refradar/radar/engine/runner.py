# radar/engine/runner.py

import time
import traceback
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from colorama import Fore

from radar.core.doi import normalize_doi
from radar.core.errors import BudgetExhausted, ProviderError
from radar.core.models import JobRow, RowResult
from radar.core.status import RowStatus
from radar.database.store import JobStore
from radar.engine.resolver import ReferenceResolver
from radar.globals import BATCH_LIMIT, OUTER_TIME_BUDGET, ROW_DELAY, SAFETY_MARGIN, TIME_BUDGET
from radar.logger import ColorLogger
from radar.utils.progress import create_progress_bar

log = ColorLogger("RUNNER", Fore.MAGENTA, include_timestamps=True)


@dataclass
class BatchSummary:
    processed: int = 0
    errors: int = 0
    stopped_for_budget: bool = False
    by_status: Dict[str, int] = field(default_factory=dict)

    def record(self, result: RowResult) -> None:
        self.processed += 1
        if result.status is RowStatus.ERROR:
            self.errors += 1
        key = result.status.value
        self.by_status[key] = self.by_status.get(key, 0) + 1


@dataclass
class RunSummary:
    batches: int = 0
    processed: int = 0
    errors: int = 0
    stopped_for_budget: bool = False
    by_status: Dict[str, int] = field(default_factory=dict)

    def add(self, batch: BatchSummary) -> None:
        self.batches += 1
        self.processed += batch.processed
        self.errors += batch.errors
        for key, n in batch.by_status.items():
            self.by_status[key] = self.by_status.get(key, 0) + n


class BatchJobRunner:
    """
    Resumable, time-boxed processing of pending job rows.

    Each row goes Pending -> InFlight -> Committed. A row is committed
    before the next one starts, so stopping at any point loses at most
    the row in flight, which stays pending for the next invocation.

    There is no locking: two runners over the same store may both pick
    up the same pending row.
    """

    def __init__(
        self,
        store: JobStore,
        resolver: ReferenceResolver,
        limit: int = BATCH_LIMIT,
        row_delay: float = ROW_DELAY,
        time_budget: float = TIME_BUDGET,
        safety_margin: float = SAFETY_MARGIN,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], None]] = None,
        show_progress: bool = False,
    ):
        self.store = store
        self.resolver = resolver
        self.limit = limit
        self.row_delay = row_delay
        self.time_budget = time_budget
        self.safety_margin = safety_margin
        self.clock = clock
        self.sleep = sleep or time.sleep
        self.show_progress = show_progress

    def _has_budget(self, started: float) -> bool:
        remaining = self.time_budget - (self.clock() - started)
        return remaining > self.safety_margin

    def process_row(self, row: JobRow, should_continue: Optional[Callable[[], bool]] = None) -> RowResult:
        """
        Screen one row's DOI. Every failure becomes an ERROR result;
        only BudgetExhausted propagates.
        """
        if not normalize_doi(row.doi):
            return RowResult.error(f"Invalid DOI: {row.doi!r}")

        try:
            resolution = self.resolver.resolve(row.doi, should_continue=should_continue)
        except BudgetExhausted:
            raise
        except ProviderError as e:
            return RowResult.error(str(e))
        except Exception as e:
            log.error(f"Unexpected failure on {row.doi}: {e!r}")
            traceback.print_exc()
            return RowResult.error(f"Unexpected error: {e}")

        return RowResult.from_resolution(resolution)

    def process_next_batch(self, limit: Optional[int] = None) -> BatchSummary:
        """Process up to `limit` pending rows within one time budget."""
        started = self.clock()
        summary = BatchSummary()
        rows = self.store.list_pending(self.limit if limit is None else limit)

        if not rows:
            log.info("No pending rows.")
            return summary

        log.info(f"Processing up to {len(rows)} pending rows (budget {self.time_budget:.0f}s)...")
        progress = create_progress_bar(total=len(rows), desc="Batch", unit="row") if self.show_progress else None

        def should_continue() -> bool:
            return self._has_budget(started)

        try:
            for i, row in enumerate(rows):
                if i > 0 and self.row_delay > 0:
                    self.sleep(self.row_delay)

                if not self._has_budget(started):
                    log.warn(f"Time budget nearly used; stopping before row {row.key} ({row.doi}).")
                    summary.stopped_for_budget = True
                    break

                try:
                    result = self.process_row(row, should_continue=should_continue)
                except BudgetExhausted as e:
                    log.warn(f"{e}; row {row.key} left pending.")
                    summary.stopped_for_budget = True
                    break

                self.store.commit(row, result)
                summary.record(result)

                if result.status is RowStatus.ERROR:
                    log.error(f"Row {row.key} {row.doi}: {result.reason}")
                else:
                    log.success(f"Row {row.key} {row.doi}: {result.status.value} ({result.reason})")
                if progress is not None:
                    progress.update(1, status=result.status.value)
        finally:
            if progress is not None:
                progress.close()

        log.info(f"Batch finished: {summary.processed} processed, {summary.errors} errors.")
        return summary

    def process_all(self, outer_budget: float = OUTER_TIME_BUDGET) -> RunSummary:
        """
        Keep running batches until one processes nothing or the outer
        budget is spent.
        """
        started = self.clock()
        total = RunSummary()

        while True:
            if self.clock() - started >= outer_budget:
                log.warn("Outer time budget exhausted; remaining rows stay pending.")
                total.stopped_for_budget = True
                break

            batch = self.process_next_batch()
            total.add(batch)
            if batch.processed == 0:
                total.stopped_for_budget = batch.stopped_for_budget
                break

        log.success(
            f"Run finished: {total.processed} rows in {total.batches} batches, {total.errors} errors."
        )
        return total
