"""Index-membership lists scraped from the wiki parse API."""

from trada.wiki.client import WikiClient, WikiPage, parse_envelope
from trada.wiki.parsers import IndexParser, ParserRegistry, TableIndexParser, default_registry
from trada.wiki.pipeline import IndexPipeline, fetch_index_lists

__all__ = [
    "WikiClient",
    "WikiPage",
    "parse_envelope",
    "IndexParser",
    "ParserRegistry",
    "TableIndexParser",
    "default_registry",
    "IndexPipeline",
    "fetch_index_lists",
]
