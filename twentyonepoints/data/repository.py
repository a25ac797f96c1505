from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import asc, delete, desc, func, insert, select, update

from twentyonepoints.core.container import get_container
from twentyonepoints.core.enums import StereotypeType
from twentyonepoints.data.adapter import get_database_adapter
from twentyonepoints.data.entity import (
    EntityMetadata,
    entity_from_row,
    entity_to_row,
    get_entity_metadata,
)
from twentyonepoints.data.pagination import Order, Page, Pageable
from twentyonepoints.exceptions import PropertyReferenceException


def resolve_sort_columns(entity_meta: EntityMetadata, orders: List[Order]):
    """Translate sort orders into column clauses, ids last as tie-breaker."""
    clauses = []
    for order in orders:
        field_meta = entity_meta.field(order.property)
        if field_meta is None:
            raise PropertyReferenceException(entity_meta.name, order.property)
        column = entity_meta.table.c[field_meta.name]
        clauses.append(asc(column) if order.ascending else desc(column))
    clauses.append(asc(entity_meta.table.c[entity_meta.id_field.name]))
    return clauses


class _CrudOperations:
    """
    CRUD and paging operations shared by every ``@CrudRepository``.

    ``__entity_metadata__`` is set on the generated class.
    """

    __entity_metadata__: EntityMetadata

    @property
    def entity_metadata(self) -> EntityMetadata:
        return self.__entity_metadata__

    def _id_column(self):
        meta = self.__entity_metadata__
        return meta.table.c[meta.id_field.name]

    def _to_entity(self, row) -> Any:
        return entity_from_row(self.__entity_metadata__.entity_class, dict(row._mapping))

    async def _load(self, conn, entity_id) -> Optional[Any]:
        query = select(self.__entity_metadata__.table).where(
            self._id_column() == entity_id
        )
        row = (await conn.execute(query)).first()
        return self._to_entity(row) if row is not None else None

    def _write_values(self, entity, creating: bool) -> Dict[str, Any]:
        meta = self.__entity_metadata__
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        values = entity_to_row(entity)
        for field_meta in meta.fields:
            if field_meta.update_on_save or (field_meta.update_on_create and creating):
                values[field_meta.name] = now
            elif field_meta.update_on_create and not creating:
                values.pop(field_meta.name)
        return values

    async def save(self, entity):
        """
        Insert or update an entity and return it as stored.

        An entity without an id is inserted and receives the generated id.
        An entity with an id updates that row, or is inserted under that id
        when no such row exists.
        """
        meta = self.__entity_metadata__
        id_name = meta.id_field.name
        table = meta.table
        entity_id = getattr(entity, id_name)

        async with get_database_adapter().connection() as conn:
            if entity_id is None:
                values = self._write_values(entity, creating=True)
                values.pop(id_name)
                result = await conn.execute(insert(table).values(**values))
                entity_id = result.inserted_primary_key[0]
            else:
                values = self._write_values(entity, creating=False)
                values.pop(id_name)
                result = await conn.execute(
                    update(table).where(self._id_column() == entity_id).values(**values)
                )
                if result.rowcount == 0:
                    values = self._write_values(entity, creating=True)
                    await conn.execute(insert(table).values(**values))

            stored = await self._load(conn, entity_id)

        setattr(entity, id_name, entity_id)
        return stored

    async def restore(self, entity):
        """Write a previously loaded snapshot back verbatim, timestamps included."""
        meta = self.__entity_metadata__
        values = entity_to_row(entity)
        entity_id = values.pop(meta.id_field.name)

        async with get_database_adapter().connection() as conn:
            result = await conn.execute(
                update(meta.table).where(self._id_column() == entity_id).values(**values)
            )
            if result.rowcount == 0:
                await conn.execute(
                    insert(meta.table).values(**{meta.id_field.name: entity_id}, **values)
                )
            return await self._load(conn, entity_id)

    async def save_all(self, entities) -> List[Any]:
        return [await self.save(entity) for entity in entities]

    async def find_by_id(self, entity_id) -> Optional[Any]:
        async with get_database_adapter().connection() as conn:
            return await self._load(conn, entity_id)

    async def exists_by_id(self, entity_id) -> bool:
        query = (
            select(func.count())
            .select_from(self.__entity_metadata__.table)
            .where(self._id_column() == entity_id)
        )
        async with get_database_adapter().connection() as conn:
            return (await conn.execute(query)).scalar_one() > 0

    async def find_all(self, pageable: Optional[Pageable] = None) -> Page:
        """Fetch one page ordered by the pageable's sort, then by id."""
        meta = self.__entity_metadata__
        pageable = pageable or Pageable.unpaged()

        query = select(meta.table).order_by(*resolve_sort_columns(meta, pageable.sort))
        if pageable.is_paged:
            query = query.limit(pageable.size).offset(pageable.offset)

        async with get_database_adapter().connection() as conn:
            rows = (await conn.execute(query)).fetchall()
            total = (
                await conn.execute(select(func.count()).select_from(meta.table))
            ).scalar_one()

        return Page([self._to_entity(row) for row in rows], pageable, total)

    async def count(self) -> int:
        query = select(func.count()).select_from(self.__entity_metadata__.table)
        async with get_database_adapter().connection() as conn:
            return (await conn.execute(query)).scalar_one()

    async def delete_by_id(self, entity_id) -> bool:
        """Delete a row; returns False when the id was not stored."""
        query = delete(self.__entity_metadata__.table).where(
            self._id_column() == entity_id
        )
        async with get_database_adapter().connection() as conn:
            result = await conn.execute(query)
        return result.rowcount > 0

    async def delete(self, entity) -> bool:
        return await self.delete_by_id(
            getattr(entity, self.__entity_metadata__.id_field.name)
        )

    async def delete_all(self) -> int:
        async with get_database_adapter().connection() as conn:
            result = await conn.execute(delete(self.__entity_metadata__.table))
        return result.rowcount


def CrudRepository(entity):
    """
    Turn an empty class into a repository for ``entity``.

    Methods declared on the class take precedence over the generated ones.

        @CrudRepository(entity=User)
        class UserRepository:
            pass
    """

    def decorator(cls):
        entity_meta = get_entity_metadata(entity)
        repository_cls = type(
            cls.__name__,
            (cls, _CrudOperations),
            {
                "__module__": cls.__module__,
                "__qualname__": cls.__qualname__,
                "__doc__": cls.__doc__,
                "__entity_metadata__": entity_meta,
                "__twentyonepoints_component__": True,
                "_stereotype_subtype": StereotypeType.REPOSITORY,
            },
        )
        get_container().register(repository_cls)
        return repository_cls

    return decorator
