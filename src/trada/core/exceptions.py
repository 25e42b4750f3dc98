"""Custom exception hierarchy for trada."""

from typing import Any


class TradaError(Exception):
    """Base exception for all trada errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(TradaError):
    """Invalid or missing configuration.

    Raised by load_config() and the CLI during startup. Should be treated
    as fatal.

    Context keys:
        field: str: the config field that failed validation
        value: Any: the invalid value (redacted for secrets)
    """


class WorksetError(TradaError):
    """The work set is empty or could not be loaded.

    Policy: fatal for the run. Nothing has been fetched yet.

    Context keys:
        path: str: the watchlist that failed, if any
        line: int: offending line number, if any
    """


class FetchError(TradaError):
    """Network/transport failure or non-2xx HTTP status.

    Policy: log and skip the item. Do not abort the run.

    Context keys:
        url: str: the URL that was being fetched
        status_code: int | None: HTTP status, if a response arrived
    """


class WikiAPIError(FetchError):
    """Wiki API answered HTTP 200 with an error envelope.

    Context keys:
        code: str: API error code
        info: str: API error description
    """


class ParseError(TradaError):
    """Payload does not match the expected shape or types.

    Policy: quarantine the raw payload, log and skip the item.

    Context keys:
        field: str: the field that failed conversion
        value: str: the raw value
        size: int: payload size in bytes
    """


class PersistError(TradaError):
    """Filesystem failure while merging or writing a table.

    Policy: log and skip the item. The previous file is never partially
    overwritten.

    Context keys:
        operation: str: "mkdir", "read", "tempfile", "write", "chmod",
            "rename" or "quarantine"
        path: str: the file or directory involved
    """


class RunCancelled(TradaError):
    """The run was cancelled before this item could be completed."""
