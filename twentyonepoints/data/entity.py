"""
Entity declarations mapped onto SQLAlchemy tables.

An entity is a dataclass decorated with ``@Entity()``. Field markers
(``Id``, ``Column``, ``Field``) carry the column options; every other
dataclass field becomes a plain nullable column of the mapped type.

    @Entity(table="jhi_user")
    @dataclass
    class User:
        id: Optional[int] = Id()
        login: str = Column(max_length=50, default="")
"""

import dataclasses
import re
import types
import typing
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Type

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)
from sqlalchemy import Column as SAColumn

from twentyonepoints.exceptions import (
    EntityDefinitionException,
    RequestValidationException,
)

FIELD_OPTIONS_KEY = "twentyonepoints"

# Range of a signed 64-bit SQL INTEGER.
INTEGER_MIN = -(2**63)
INTEGER_MAX = 2**63 - 1

metadata = MetaData()

_entities: Dict[Type, "EntityMetadata"] = {}


@dataclass
class FieldMetadata:
    name: str
    python_type: Any
    json_name: str
    primary_key: bool = False
    unique: bool = False
    nullable: bool = True
    max_length: Optional[int] = None
    update_on_create: bool = False
    update_on_save: bool = False

    @property
    def store_managed(self) -> bool:
        return self.update_on_create or self.update_on_save


@dataclass
class EntityMetadata:
    entity_class: Type
    name: str
    table_name: str
    id_field: FieldMetadata
    fields: List[FieldMetadata]
    table: Table

    def field(self, name: str) -> Optional[FieldMetadata]:
        """Find a field by its Python or JSON name."""
        for f in self.fields:
            if f.name == name or f.json_name == name:
                return f
        return None


def Id():
    """Surrogate primary key assigned by the store on insert."""
    return field(default=None, metadata={FIELD_OPTIONS_KEY: {"primary_key": True}})


def Column(
    default: Any = None,
    default_factory: Any = dataclasses.MISSING,
    unique: bool = False,
    nullable: bool = True,
    max_length: Optional[int] = None,
):
    options = {"unique": unique, "nullable": nullable, "max_length": max_length}
    if default_factory is not dataclasses.MISSING:
        return field(
            default_factory=default_factory, metadata={FIELD_OPTIONS_KEY: options}
        )
    return field(default=default, metadata={FIELD_OPTIONS_KEY: options})


def Field(update_on_create: bool = False, update_on_save: bool = False):
    """A timestamp column maintained by the repository rather than the client."""
    return field(
        default=None,
        metadata={
            FIELD_OPTIONS_KEY: {
                "update_on_create": update_on_create,
                "update_on_save": update_on_save,
            }
        },
    )


def to_camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _unwrap_optional(tp: Any) -> Any:
    if typing.get_origin(tp) in (typing.Union, getattr(types, "UnionType", typing.Union)):
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def _sqlalchemy_type(python_type: Any, max_length: Optional[int]):
    base = _unwrap_optional(python_type)
    origin = typing.get_origin(base)
    if origin in (list, dict) or base in (list, dict):
        return JSON()
    if base is bool:
        return Boolean()
    if base is int:
        return Integer()
    if base is float:
        return Float()
    if base is datetime:
        return DateTime()
    if base is date:
        return Date()
    if base is str:
        return String(max_length) if max_length else Text()
    raise EntityDefinitionException(f"Unsupported column type: {python_type!r}")


def Entity(table: Optional[str] = None):
    """
    Register a dataclass as a persistent entity.

    Must be applied on top of ``@dataclass``.
    """

    def decorator(cls):
        if not dataclasses.is_dataclass(cls):
            raise EntityDefinitionException(
                f"@Entity requires a dataclass, got {cls.__name__}"
            )

        hints = typing.get_type_hints(cls)
        field_metas: List[FieldMetadata] = []
        columns = []
        id_field = None

        for f in dataclasses.fields(cls):
            options = f.metadata.get(FIELD_OPTIONS_KEY, {})
            meta = FieldMetadata(
                name=f.name,
                python_type=hints[f.name],
                json_name=to_camel_case(f.name),
                primary_key=options.get("primary_key", False),
                unique=options.get("unique", False),
                nullable=options.get("nullable", True),
                max_length=options.get("max_length"),
                update_on_create=options.get("update_on_create", False),
                update_on_save=options.get("update_on_save", False),
            )
            field_metas.append(meta)

            if meta.primary_key:
                if id_field is not None:
                    raise EntityDefinitionException(
                        f"{cls.__name__} declares more than one Id()"
                    )
                id_field = meta
                columns.append(
                    SAColumn(meta.name, Integer(), primary_key=True, autoincrement=True)
                )
            else:
                columns.append(
                    SAColumn(
                        meta.name,
                        _sqlalchemy_type(meta.python_type, meta.max_length),
                        unique=meta.unique,
                        nullable=meta.nullable,
                    )
                )

        if id_field is None:
            raise EntityDefinitionException(f"{cls.__name__} has no Id() field")

        table_name = table or to_snake_case(cls.__name__)
        sa_table = Table(table_name, metadata, *columns, extend_existing=True)

        entity_meta = EntityMetadata(
            entity_class=cls,
            name=cls.__name__,
            table_name=table_name,
            id_field=id_field,
            fields=field_metas,
            table=sa_table,
        )
        cls.__entity_metadata__ = entity_meta
        _entities[cls] = entity_meta
        return cls

    return decorator


def is_entity(cls) -> bool:
    return cls in _entities


def get_entity_metadata(cls) -> EntityMetadata:
    try:
        return _entities[cls]
    except KeyError:
        raise EntityDefinitionException(f"{cls.__name__} is not an @Entity") from None


def get_all_entities() -> Dict[Type, EntityMetadata]:
    return dict(_entities)


def entity_to_dict(entity: Any) -> Dict[str, Any]:
    """JSON-ready mapping of an entity, keyed by camelCase names."""
    meta = get_entity_metadata(type(entity))
    return {f.json_name: getattr(entity, f.name) for f in meta.fields}


def entity_to_row(entity: Any) -> Dict[str, Any]:
    meta = get_entity_metadata(type(entity))
    return {f.name: getattr(entity, f.name) for f in meta.fields}


def entity_from_row(cls: Type, row: Dict[str, Any]):
    meta = get_entity_metadata(cls)
    return cls(**{f.name: row.get(f.name) for f in meta.fields})


def _coerce(entity_name: str, meta: FieldMetadata, value: Any) -> Any:
    if value is None:
        return None

    base = _unwrap_optional(meta.python_type)
    origin = typing.get_origin(base)

    def invalid():
        return RequestValidationException(
            f"Invalid value for {entity_name}.{meta.json_name}: {value!r}"
        )

    if base is bool:
        if isinstance(value, bool):
            return value
        raise invalid()
    if base is int:
        if isinstance(value, bool):
            raise invalid()
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            value = int(value)
        if isinstance(value, int) and INTEGER_MIN <= value <= INTEGER_MAX:
            return value
        raise invalid()
    if base is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        raise invalid()
    if base is str:
        if isinstance(value, str):
            return value
        raise invalid()
    if base is datetime:
        if isinstance(value, datetime):
            return value
        if not isinstance(value, str):
            raise invalid()
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise invalid() from None
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed
    if base is date:
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(value)
        except (TypeError, ValueError):
            raise invalid() from None
    if origin is list or base is list:
        if isinstance(value, list):
            return list(value)
        raise invalid()
    if origin is dict or base is dict:
        if isinstance(value, dict):
            return dict(value)
        raise invalid()
    return value


def entity_from_dict(cls: Type, data: Any):
    """
    Build an entity from a decoded JSON body.

    Accepts camelCase or snake_case keys and ignores unknown properties.
    """
    if not isinstance(data, dict):
        raise RequestValidationException(
            f"Expected a JSON object for {cls.__name__}, got {type(data).__name__}"
        )

    meta = get_entity_metadata(cls)
    kwargs = {}
    for f in meta.fields:
        if f.json_name in data:
            raw = data[f.json_name]
        elif f.name in data:
            raw = data[f.name]
        else:
            continue
        kwargs[f.name] = _coerce(meta.name, f, raw)
    return cls(**kwargs)
