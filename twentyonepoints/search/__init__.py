from twentyonepoints.search.index import (
    SearchEngine,
    SearchIndex,
    get_search_engine,
    set_search_engine,
)
from twentyonepoints.search.query import analyze, parse_query
from twentyonepoints.search.reindex import reindex
from twentyonepoints.search.repository import SearchRepository

__all__ = [
    "SearchEngine",
    "SearchIndex",
    "SearchRepository",
    "get_search_engine",
    "set_search_engine",
    "parse_query",
    "analyze",
    "reindex",
]
