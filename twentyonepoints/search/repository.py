from typing import Any, Iterable, List, Optional, Union

from twentyonepoints.core.container import get_container
from twentyonepoints.core.enums import StereotypeType
from twentyonepoints.data.entity import EntityMetadata, get_entity_metadata
from twentyonepoints.data.pagination import Page, Pageable
from twentyonepoints.search.index import SearchIndex, get_search_engine
from twentyonepoints.search.query import Query, parse_query


class _SearchOperations:
    """Index and query operations shared by every ``@SearchRepository``."""

    __entity_metadata__: EntityMetadata

    @property
    def index(self) -> SearchIndex:
        # Resolved per call so a replaced engine takes effect immediately
        return get_search_engine().index_for(self.__entity_metadata__.entity_class)

    async def save(self, entity):
        """Index or re-index an entity."""
        self.index.index(entity)
        return entity

    async def save_all(self, entities: Iterable[Any]) -> List[Any]:
        index = self.index
        saved = []
        for entity in entities:
            index.index(entity)
            saved.append(entity)
        return saved

    async def find_by_id(self, entity_id) -> Optional[Any]:
        return self.index.get(entity_id)

    async def delete_by_id(self, entity_id) -> bool:
        return self.index.delete(entity_id)

    async def delete_all(self):
        self.index.clear()

    async def count(self) -> int:
        return self.index.count()

    async def search(
        self, query: Union[str, Query], pageable: Optional[Pageable] = None
    ) -> Page:
        """Run a query string (or a prebuilt Query) against the index."""
        if isinstance(query, str):
            query = parse_query(query)
        return self.index.search(query, pageable)


def SearchRepository(entity):
    """
    Turn an empty class into a search repository for ``entity``.

        @SearchRepository(entity=User)
        class UserSearchRepository:
            pass
    """

    def decorator(cls):
        entity_meta = get_entity_metadata(entity)
        repository_cls = type(
            cls.__name__,
            (cls, _SearchOperations),
            {
                "__module__": cls.__module__,
                "__qualname__": cls.__qualname__,
                "__doc__": cls.__doc__,
                "__entity_metadata__": entity_meta,
                "__twentyonepoints_component__": True,
                "_stereotype_subtype": StereotypeType.SEARCH_REPOSITORY,
            },
        )
        get_container().register(repository_cls)
        return repository_cls

    return decorator
