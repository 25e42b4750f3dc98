"""Merge-and-persist engine for semicolon-delimited tables.

Every table has one header row; column 0 of each data row is its key.
Saving a batch reconciles it with the file already on disk (fresh rows win
on key collision, old-only keys are kept), sorts rows by key and replaces
the file atomically: the table is written to a temporary sibling, its
permissions set, then renamed over the destination. A reader never sees a
half-written table and a failed write leaves the previous file untouched.
"""

from __future__ import annotations

import asyncio
import csv
import io
import logging
import os
import tempfile
from collections import defaultdict
from collections.abc import Iterable, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from trada.core.exceptions import PersistError

logger = logging.getLogger(__name__)

DIR_MODE = 0o755
FILE_MODE = 0o644
DELIMITER = ";"
QUARANTINE_SUFFIX = ".json.swp"

Row = list[str]


def read_table(path: Path) -> list[Row]:
    """Read every row of a table, header included.

    Raises:
        PersistError: The file cannot be opened or is not valid CSV.
    """
    try:
        with open(path, newline="", encoding="utf-8") as f:
            return [row for row in csv.reader(f, delimiter=DELIMITER) if row]
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        raise PersistError(
            f"read {path} failed: {e}",
            context={"operation": "read", "path": str(path)},
        ) from e


def merge_tables(existing: Sequence[Row], fresh: Sequence[Row]) -> list[Row]:
    """Overlay ``fresh`` data rows onto ``existing`` ones, keyed by column 0.

    The header of ``fresh`` is kept. Data rows are sorted ascending by key;
    the ISO date format makes lexical order chronological.
    """
    if not fresh:
        raise ValueError("fresh table must contain at least a header row")

    header, *fresh_rows = fresh
    by_key: dict[str, Row] = {}
    for row in existing[1:]:
        by_key[row[0]] = list(row)
    for row in fresh_rows:
        by_key[row[0]] = list(row)

    return [list(header), *(by_key[key] for key in sorted(by_key))]


def encode_table(rows: Iterable[Row]) -> str:
    """Serialize rows with the table dialect."""
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=DELIMITER, lineterminator="\n")
    writer.writerows(rows)
    return buf.getvalue()


def write_table_atomic(path: Path, rows: Iterable[Row], file_mode: int = FILE_MODE) -> None:
    """Write ``rows`` to ``path`` via temp file + rename.

    The temporary file is removed on every failure path before the rename.

    Raises:
        PersistError: With ``context["operation"]`` naming the failed step.
    """
    path = Path(path)
    _ensure_dir(path.parent)

    try:
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".swp"
        )
    except OSError as e:
        raise PersistError(
            f"creating temp file for {path} failed: {e}",
            context={"operation": "tempfile", "path": str(path)},
        ) from e

    tmp_path = Path(tmp_name)
    committed = False
    try:
        try:
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
                f.write(encode_table(rows))
                f.flush()
                os.fsync(f.fileno())
        except (OSError, csv.Error) as e:
            raise PersistError(
                f"writing temp file {tmp_path} failed: {e}",
                context={"operation": "write", "path": str(tmp_path)},
            ) from e

        try:
            os.chmod(tmp_path, file_mode)
        except OSError as e:
            raise PersistError(
                f"chmod {oct(file_mode)} {tmp_path} failed: {e}",
                context={"operation": "chmod", "path": str(tmp_path)},
            ) from e

        try:
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistError(
                f"rename {tmp_path} -> {path} failed: {e}",
                context={"operation": "rename", "path": str(path)},
            ) from e
        committed = True
    finally:
        if not committed:
            tmp_path.unlink(missing_ok=True)


def _ensure_dir(directory: Path) -> None:
    try:
        directory.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
    except OSError as e:
        raise PersistError(
            f"creating directory {directory} failed: {e}",
            context={"operation": "mkdir", "path": str(directory)},
        ) from e


class TableStore:
    """Merges fresh tables into on-disk ones and commits them atomically.

    Nothing here is retried; retrying is a re-run of the whole idempotent
    pipeline.

    Parameters
    ----------
    file_mode : int
        Permissions of committed tables. Default: 0o644.
    """

    def __init__(self, file_mode: int = FILE_MODE) -> None:
        self._file_mode = file_mode

    def save(self, path: Path, rows: Sequence[Row], merge: bool = True) -> Path:
        """Reconcile ``rows`` with the table at ``path`` and commit.

        With ``merge=False`` the fresh table replaces the old content
        outright (still sorted and de-duplicated by key).
        """
        path = Path(path)
        existing: list[Row] = []
        if merge and path.is_file():
            existing = read_table(path)

        output = merge_tables(existing, rows)
        write_table_atomic(path, output, file_mode=self._file_mode)
        logger.debug("saved %d rows to %s", len(output) - 1, path)
        return path

    def quarantine(self, path: Path, payload: bytes) -> Path:
        """Store an unparseable payload verbatim next to ``path``.

        ``path`` is the intended output path without extension; the
        quarantine file gets ``.json.swp`` appended.
        """
        target = Path(f"{path}{QUARANTINE_SUFFIX}")
        _ensure_dir(target.parent)
        try:
            target.write_bytes(payload)
            os.chmod(target, self._file_mode)
        except OSError as e:
            raise PersistError(
                f"writing quarantine file {target} failed: {e}",
                context={"operation": "quarantine", "path": str(target)},
            ) from e
        return target


class PathLocks:
    """One asyncio lock per destination path.

    Keeps read-existing → overlay → atomic-write of two items that map to
    the same file from interleaving.
    """

    def __init__(self) -> None:
        self._locks: defaultdict[Path, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def hold(self, path: Path) -> AsyncIterator[None]:
        lock = self._locks[Path(path).resolve()]
        async with lock:
            yield
