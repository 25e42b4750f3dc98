"""Per-resource fetch → envelope → parse → persist pipeline for index lists."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from trada.core.config import IndexResource
from trada.core.exceptions import ParseError
from trada.marketdata.store import PathLocks, TableStore
from trada.marketdata.watchlist import dedupe_specs, specs_to_rows
from trada.wiki.client import WikiClient, parse_envelope
from trada.wiki.parsers import ParserRegistry, default_registry
from trada.worklist import RunReport, Worklist, check_cancelled

logger = logging.getLogger(__name__)


class IndexPipeline:
    """Scrapes one index page section into a membership table.

    The table replaces the previous file unless the resource sets
    ``merge``. Unparseable payloads are quarantined next to the output.
    """

    def __init__(
        self,
        wiki: WikiClient,
        output_dir: Path,
        registry: ParserRegistry | None = None,
        store: TableStore | None = None,
        locks: PathLocks | None = None,
        cancel: asyncio.Event | None = None,
    ) -> None:
        self._wiki = wiki
        self._output_dir = Path(output_dir)
        self._registry = registry or default_registry()
        self._store = store or TableStore()
        self._locks = locks or PathLocks()
        self._cancel = cancel

    def output_path(self, resource: IndexResource) -> Path:
        return self._output_dir / resource.output_file

    async def __call__(self, resource: IndexResource) -> Path:
        parser = self._registry.get(resource.name)
        path = self.output_path(resource)

        raw = await self._wiki.fetch(resource)
        logger.debug("%s: fetch - OK", resource.name)

        try:
            page = parse_envelope(raw)
            specs = dedupe_specs(parser.parse(page.html))
            if len(specs) < resource.min_count:
                raise ParseError(
                    f"{resource.name}: expected at least {resource.min_count} "
                    f"members, got {len(specs)}",
                    context={"field": "min_count", "value": str(len(specs))},
                )
        except ParseError as e:
            quarantined = self._store.quarantine(path, raw)
            e.context["quarantine"] = str(quarantined)
            logger.error("%s: parse error: %s; check %s", resource.name, e, quarantined)
            raise
        logger.debug("%s: parse - OK (%d members)", resource.name, len(specs))

        check_cancelled(self._cancel)
        rows = specs_to_rows(specs)
        async with self._locks.hold(path):
            await asyncio.to_thread(self._store.save, path, rows, resource.merge)
        return path


async def fetch_index_lists(
    resources: list[IndexResource],
    wiki: WikiClient,
    output_dir: Path,
    max_procs: int = 1,
    cancel: asyncio.Event | None = None,
) -> RunReport:
    """Run the index pipeline over every configured resource."""
    pipeline = IndexPipeline(wiki, output_dir, cancel=cancel)
    worklist = Worklist(
        resources,
        pipeline,
        key=lambda r: r.name,
        max_procs=max_procs,
        cancel=cancel,
    )
    return await worklist.run()
