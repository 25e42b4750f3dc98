"""Per-instrument fetch → parse → encode → merge-and-persist pipeline."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from trada.core.exceptions import ParseError
from trada.core.models import InstrumentSpec
from trada.marketdata.codec import encode_bars
from trada.marketdata.models import BarSeries
from trada.marketdata.provider import BarSource
from trada.marketdata.store import PathLocks, TableStore
from trada.worklist import RunReport, Worklist, check_cancelled

logger = logging.getLogger(__name__)


class BarPipeline:
    """Fetches one instrument's bars and merges them into ``{symbol}.csv``.

    Unparseable payloads are quarantined to ``{symbol}.json.swp`` in the
    same directory before the ParseError propagates to the worklist.
    """

    def __init__(
        self,
        source: BarSource,
        output_dir: Path,
        store: TableStore | None = None,
        locks: PathLocks | None = None,
        cancel: asyncio.Event | None = None,
    ) -> None:
        self._source = source
        self._output_dir = Path(output_dir)
        self._store = store or TableStore()
        self._locks = locks or PathLocks()
        self._cancel = cancel

    def output_path(self, spec: InstrumentSpec) -> Path:
        return self._output_dir / f"{spec.symbol}.csv"

    async def __call__(self, spec: InstrumentSpec) -> Path:
        raw = await self._source.fetch(spec)
        logger.debug("%s: fetch - OK", spec.symbol)

        try:
            series = BarSeries(self._source.adapt(raw))
        except ParseError as e:
            quarantined = self._store.quarantine(self._output_dir / spec.symbol, raw)
            e.context["quarantine"] = str(quarantined)
            logger.error("%s: parse error: %s; check %s", spec.symbol, e, quarantined)
            raise
        logger.debug("%s: parse - OK (%d bars)", spec.symbol, len(series))

        rows = encode_bars(series, spec.security_class)
        path = self.output_path(spec)

        check_cancelled(self._cancel)
        async with self._locks.hold(path):
            await asyncio.to_thread(self._store.save, path, rows)
        logger.debug("%s: saved to %s", spec.symbol, path)
        return path


async def fetch_instruments(
    specs: list[InstrumentSpec],
    source: BarSource,
    output_dir: Path,
    max_procs: int = 1,
    cancel: asyncio.Event | None = None,
) -> RunReport:
    """Run the bar pipeline over ``specs``."""
    pipeline = BarPipeline(source, output_dir, cancel=cancel)
    worklist = Worklist(
        specs,
        pipeline,
        key=lambda s: s.symbol,
        max_procs=max_procs,
        cancel=cancel,
    )
    return await worklist.run()
