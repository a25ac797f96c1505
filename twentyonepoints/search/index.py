import copy
import threading
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Type

from twentyonepoints.data.entity import EntityMetadata, get_entity_metadata
from twentyonepoints.data.pagination import Order, Page, Pageable, paginate
from twentyonepoints.exceptions import PropertyReferenceException
from twentyonepoints.search.query import Document, Query, analyze


def analyze_value(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, bool):
        return ["true" if value else "false"]
    if isinstance(value, (int, float)):
        return [str(value).lower()]
    if isinstance(value, (datetime, date)):
        return analyze(value.isoformat())
    if isinstance(value, (list, tuple, set)):
        return [token for item in value for token in analyze_value(item)]
    if isinstance(value, dict):
        return [token for item in value.values() for token in analyze_value(item)]
    return analyze(str(value))


@dataclass
class SearchHit:
    score: float
    document: Document


class SearchIndex:
    """
    In-process document index for one entity type.

    Stores a private copy of every indexed entity so callers mutating
    their objects do not change what the index returns.
    """

    def __init__(self, entity_meta: EntityMetadata):
        self.entity_meta = entity_meta
        self._documents: Dict[Any, Document] = {}
        self._lock = threading.RLock()

    def _build_document(self, entity) -> Document:
        fields = {
            f.name: analyze_value(getattr(entity, f.name))
            for f in self.entity_meta.fields
        }
        doc_id = getattr(entity, self.entity_meta.id_field.name)
        return Document(doc_id, fields, copy.deepcopy(entity))

    def index(self, entity):
        if getattr(entity, self.entity_meta.id_field.name) is None:
            raise ValueError(f"Cannot index {self.entity_meta.name} without an id")
        document = self._build_document(entity)
        with self._lock:
            self._documents[document.id] = document

    def delete(self, doc_id) -> bool:
        with self._lock:
            return self._documents.pop(doc_id, None) is not None

    def clear(self):
        with self._lock:
            self._documents.clear()

    def count(self) -> int:
        with self._lock:
            return len(self._documents)

    def get(self, doc_id) -> Optional[Any]:
        with self._lock:
            document = self._documents.get(doc_id)
        return copy.deepcopy(document.source) if document else None

    def search(self, query: Query, pageable: Optional[Pageable] = None) -> Page:
        """Run ``query``; ordered by relevance then id unless ``pageable`` sorts."""
        pageable = pageable or Pageable.unpaged()
        with self._lock:
            documents = list(self._documents.values())

        hits = []
        for document in documents:
            score = query.match(document)
            if score is not None:
                hits.append(SearchHit(score, document))

        if pageable.sort:
            hits = self._sort_hits(hits, pageable.sort)
        else:
            hits.sort(key=lambda hit: (-hit.score, hit.document.id))

        page = paginate(hits, pageable)
        return page.map(lambda hit: copy.deepcopy(hit.document.source))

    def _sort_hits(self, hits: List[SearchHit], orders: List[Order]) -> List[SearchHit]:
        hits = sorted(hits, key=lambda hit: hit.document.id)
        # Stable sorts applied from the least to the most significant order
        for order in reversed(orders):
            field_meta = self.entity_meta.field(order.property)
            if field_meta is None:
                raise PropertyReferenceException(self.entity_meta.name, order.property)

            def value_of(hit):
                return getattr(hit.document.source, field_meta.name)

            present = [hit for hit in hits if value_of(hit) is not None]
            missing = [hit for hit in hits if value_of(hit) is None]
            present.sort(key=lambda hit: _sort_key(value_of(hit)), reverse=not order.ascending)
            hits = present + missing
        return hits


def _sort_key(value: Any):
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value)
    return value


class SearchEngine:
    """Holds one SearchIndex per entity class."""

    def __init__(self):
        self._indices: Dict[Type, SearchIndex] = {}
        self._lock = threading.Lock()

    def index_for(self, entity_cls: Type) -> SearchIndex:
        with self._lock:
            if entity_cls not in self._indices:
                self._indices[entity_cls] = SearchIndex(get_entity_metadata(entity_cls))
            return self._indices[entity_cls]

    def indices(self) -> Dict[Type, SearchIndex]:
        with self._lock:
            return dict(self._indices)


_engine: Optional[SearchEngine] = None
_engine_lock = threading.Lock()


def get_search_engine() -> SearchEngine:
    global _engine
    with _engine_lock:
        if _engine is None:
            _engine = SearchEngine()
        return _engine


def set_search_engine(engine: Optional[SearchEngine]):
    global _engine
    with _engine_lock:
        _engine = engine
