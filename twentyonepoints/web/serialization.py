import dataclasses
import json
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from twentyonepoints.data.entity import entity_to_dict, is_entity
from twentyonepoints.data.pagination import Page


class TwentyOnePointsJSONEncoder(json.JSONEncoder):
    """JSON encoder aware of entities, pages, dataclasses and temporal types."""

    def default(self, obj: Any) -> Any:
        if is_entity(type(obj)):
            return entity_to_dict(obj)
        if isinstance(obj, Page):
            return obj.content
        if isinstance(obj, (datetime, date, time)):
            return obj.isoformat()
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, Enum):
            return obj.value
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
        if isinstance(obj, (set, frozenset)):
            return list(obj)
        return super().default(obj)


def serialize_json(data: Any) -> bytes:
    return json.dumps(
        data, cls=TwentyOnePointsJSONEncoder, ensure_ascii=False, separators=(",", ":")
    ).encode("utf-8")
