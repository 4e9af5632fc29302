"""Per-sheet fan-out with cancellation for workbook-wide operations.

Each sheet is processed by its own task; finished results land in a
lock-guarded map that accepts one insert per sheet name. Once the caller's
cancel event fires or the timeout elapses, tasks that have not started yet
return without doing any work and the results gathered so far are returned.
"""

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from contextvars import copy_context
from dataclasses import dataclass
from typing import Generic, TypeVar

from spreadsheet_skeleton.utils.exceptions import ErrorCode, SkeletonError
from spreadsheet_skeleton.utils.logging import get_logger

logger = get_logger(__name__)

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


class SheetResults(Generic[ResultT]):
    """Thread-safe, insert-once map of results keyed by sheet name."""

    def __init__(self) -> None:
        self._results: dict[str, ResultT] = {}
        self._lock = threading.Lock()

    def add(self, sheet_name: str, result: ResultT) -> None:
        """Store the result for a sheet.

        Raises:
            SkeletonError: If the sheet already has a result.
        """
        with self._lock:
            if sheet_name in self._results:
                raise SkeletonError(
                    f"Result for sheet '{sheet_name}' was already recorded",
                    error_code=ErrorCode.INTERNAL_ERROR,
                    details={"sheet_name": sheet_name},
                )
            self._results[sheet_name] = result

    def snapshot(self, order: Sequence[str]) -> dict[str, ResultT]:
        """Copy of the stored results, keyed in ``order``."""
        with self._lock:
            return {name: self._results[name] for name in order if name in self._results}

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)


@dataclass
class FanOutResult(Generic[ResultT]):
    """Outcome of a fan-out: finished results and whether work was cut short."""

    results: dict[str, ResultT]
    cancelled: bool


def fan_out(
    items: Sequence[ItemT],
    task: Callable[[ItemT], ResultT | None],
    key: Callable[[ItemT], str],
    *,
    max_workers: int | None = None,
    cancel_event: threading.Event | None = None,
    timeout: float | None = None,
) -> FanOutResult[ResultT]:
    """Run ``task`` for every item concurrently.

    Args:
        items: Work items, usually sheets.
        task: Callable producing the result for one item. A ``None`` result
            is treated as "nothing to record".
        key: Sheet name of an item.
        max_workers: Thread pool size (None uses the executor default).
        cancel_event: Caller-controlled event; once set no new task starts.
        timeout: Seconds to wait before giving up on unfinished tasks.

    Returns:
        The results keyed in item order, and whether cancellation or the
        timeout left some items unprocessed.
    """
    results: SheetResults[ResultT] = SheetResults()
    stop = threading.Event()

    def should_stop() -> bool:
        return stop.is_set() or (cancel_event is not None and cancel_event.is_set())

    def run(item: ItemT) -> None:
        if should_stop():
            return
        result = task(item)
        if result is not None:
            results.add(key(item), result)

    order = [key(item) for item in items]
    if not items:
        return FanOutResult(results={}, cancelled=False)

    executor = ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix="skeleton-sheet"
    )
    try:
        futures = [executor.submit(copy_context().run, run, item) for item in items]
        done, not_done = wait(futures, timeout=timeout)
        if not_done:
            stop.set()
        for future in done:
            future.result()
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    snapshot = results.snapshot(order)
    cancelled = len(snapshot) < len(order) and should_stop()
    if cancelled and not_done:
        logger.warning(
            "Workbook scan timed out",
            timeout_seconds=timeout,
            unfinished=len(order) - len(snapshot),
        )
    return FanOutResult(results=snapshot, cancelled=cancelled)
