"""Logging setup for the command-line tools."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(
    level: str = "info",
    log_file: str | None = None,
    verbose: bool = False,
) -> None:
    """Configure the root logger.

    A file handler is attached when ``log_file`` is set. Console output goes
    to stderr through rich when ``verbose`` is set or no file is configured.
    Level ``disabled`` silences everything.
    """
    if level == "disabled":
        logging.disable(logging.CRITICAL)
        return
    logging.disable(logging.NOTSET)

    handlers: list[logging.Handler] = []
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        handlers.append(file_handler)
    if verbose or not log_file:
        handlers.append(
            RichHandler(console=Console(stderr=True), show_path=False, markup=False)
        )

    logging.basicConfig(
        level=_LEVELS[level],
        format="%(message)s",
        handlers=handlers,
        force=True,
    )

    # Suppress noisy transport logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
