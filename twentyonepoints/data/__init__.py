from twentyonepoints.config.properties import ConfigurationProperties, get_config
from twentyonepoints.core.enums import DatabaseAdapter as DatabaseAdapterEnum
from twentyonepoints.data.adapter import (
    SQLAlchemyAdapter,
    get_database_adapter,
    set_database_adapter,
)
from twentyonepoints.data.entity import (
    Column,
    Entity,
    EntityMetadata,
    Field,
    FieldMetadata,
    Id,
    entity_from_dict,
    entity_to_dict,
    get_all_entities,
    get_entity_metadata,
    is_entity,
)
from twentyonepoints.data.pagination import Direction, Order, Page, Pageable, paginate
from twentyonepoints.data.repository import CrudRepository


async def initialize_database(config: ConfigurationProperties = None):
    """
    Connect the database adapter and create tables for every entity.

    Reads the ``database.*`` keys; returns ``None`` when no URL is set.
    """
    config = config or get_config()

    database_url = config.get("database.url")
    if not database_url:
        return None

    adapter_type = config.get("database.adapter", DatabaseAdapterEnum.SQLALCHEMY.value)
    if adapter_type != DatabaseAdapterEnum.SQLALCHEMY.value:
        raise ValueError(f"Unknown database adapter: {adapter_type}")

    database_adapter = SQLAlchemyAdapter()
    await database_adapter.connect(
        database_url,
        echo=config.get_bool("database.echo"),
        pool_size=config.get_int("database.pool.size", 5),
        max_overflow=config.get_int("database.pool.max_overflow", 10),
        pool_timeout=config.get_int("database.pool.timeout", 30),
        pool_recycle=config.get_int("database.pool.recycle", 3600),
        enable_pooling=config.get_bool("database.pool.enabled", True),
    )

    set_database_adapter(database_adapter)
    await database_adapter.create_tables()

    return database_adapter


__all__ = [
    # Entity
    "Entity",
    "Id",
    "Column",
    "Field",
    "EntityMetadata",
    "FieldMetadata",
    "get_entity_metadata",
    "get_all_entities",
    "is_entity",
    "entity_to_dict",
    "entity_from_dict",
    # Paging
    "Pageable",
    "Page",
    "Order",
    "Direction",
    "paginate",
    # Repository
    "CrudRepository",
    "SQLAlchemyAdapter",
    "set_database_adapter",
    "get_database_adapter",
    # Initialization
    "initialize_database",
]
