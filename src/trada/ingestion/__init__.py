"""HTTP ingestion: the shared rate-limited client."""

from trada.ingestion.client import HttpClient

__all__ = [
    "HttpClient",
]
