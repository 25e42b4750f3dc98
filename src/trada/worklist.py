"""Worklist orchestration: bounded async worker pool with per-item isolation.

A run processes each work item independently. One item's failure is
logged and recorded, never propagated; the run as a whole only fails when
there is nothing to process.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Generic, TypeVar

from trada.core.exceptions import RunCancelled, TradaError, WorksetError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ItemStatus(StrEnum):
    """Outcome of one work item."""

    OK = "ok"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ItemResult:
    """Outcome of one work item, with destination or failure reason."""

    key: str
    status: ItemStatus
    path: Path | None = None
    error: str | None = None
    error_type: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == ItemStatus.OK


@dataclass
class RunReport:
    """Per-item outcomes of one run, in work-set order."""

    results: list[ItemResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def succeeded(self) -> list[ItemResult]:
        return [r for r in self.results if r.status == ItemStatus.OK]

    @property
    def failed(self) -> list[ItemResult]:
        return [r for r in self.results if r.status == ItemStatus.FAILED]

    @property
    def skipped(self) -> list[ItemResult]:
        return [r for r in self.results if r.status == ItemStatus.CANCELLED]


def effective_procs(max_procs: int, item_count: int) -> int:
    """Worker count: ``max_procs`` clamped down to the work-set size."""
    return max(1, min(max_procs, item_count))


def check_cancelled(cancel: asyncio.Event | None) -> None:
    """Raise RunCancelled when ``cancel`` has fired."""
    if cancel is not None and cancel.is_set():
        raise RunCancelled("run cancelled")


class Worklist(Generic[T]):
    """Runs ``process`` over ``items`` with at most ``max_procs`` in flight.

    Parameters
    ----------
    items : Sequence[T]
        The resolved work set.
    process : Callable[[T], Awaitable[Path]]
        Per-item pipeline returning the persisted destination path.
    key : Callable[[T], str]
        Label used in logs and the report.
    max_procs : int
        Upper bound on concurrent items.
    cancel : asyncio.Event | None
        Cooperative cancellation signal, checked before each item.
    """

    def __init__(
        self,
        items: Sequence[T],
        process: Callable[[T], Awaitable[Path]],
        key: Callable[[T], str] = str,
        max_procs: int = 1,
        cancel: asyncio.Event | None = None,
    ) -> None:
        self._items = list(items)
        self._process = process
        self._key = key
        self._max_procs = max_procs
        self._cancel = cancel

    async def run(self) -> RunReport:
        """Process every item and report each outcome.

        Raises:
            WorksetError: The work set is empty.
        """
        if not self._items:
            raise WorksetError("work set is empty")

        workers = effective_procs(self._max_procs, len(self._items))
        logger.info("processing %d items with %d workers", len(self._items), workers)

        queue: asyncio.Queue[tuple[int, T]] = asyncio.Queue()
        for idx, item in enumerate(self._items):
            queue.put_nowait((idx, item))
        results: list[ItemResult | None] = [None] * len(self._items)

        async def worker() -> None:
            while True:
                try:
                    idx, item = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                if self._cancel is not None and self._cancel.is_set():
                    results[idx] = ItemResult(
                        key=self._key(item), status=ItemStatus.CANCELLED
                    )
                    continue
                results[idx] = await self._run_one(item)

        await asyncio.gather(*(worker() for _ in range(workers)))

        report = RunReport(
            results=[r for r in results if r is not None],
            cancelled=self._cancel is not None and self._cancel.is_set(),
        )
        logger.info(
            "done: %d ok, %d failed, %d cancelled",
            len(report.succeeded),
            len(report.failed),
            len(report.skipped),
        )
        return report

    async def _run_one(self, item: T) -> ItemResult:
        key = self._key(item)
        try:
            path = await self._process(item)
        except RunCancelled:
            logger.warning("%s: cancelled", key)
            return ItemResult(key=key, status=ItemStatus.CANCELLED)
        except TradaError as e:
            logger.error("%s: %s", key, e)
            return ItemResult(
                key=key,
                status=ItemStatus.FAILED,
                error=str(e),
                error_type=type(e).__name__,
            )
        except Exception as e:
            logger.exception("%s: unexpected error", key)
            return ItemResult(
                key=key,
                status=ItemStatus.FAILED,
                error=str(e),
                error_type=type(e).__name__,
            )

        logger.info("%s: %s - OK", key, path)
        return ItemResult(key=key, status=ItemStatus.OK, path=path)
