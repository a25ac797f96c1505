import inspect
import re
import typing
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from starlette.requests import Request

from twentyonepoints.data.pagination import Pageable

_PATH_PARAM = re.compile(r"{(\w+)(?::\w+)?}")

MISSING = inspect.Parameter.empty


class ParamKind(str, Enum):
    PATH = "path"
    QUERY = "query"
    BODY = "body"
    REQUEST = "request"
    PAGEABLE = "pageable"


@dataclass
class ParamMarker:
    kind: ParamKind
    name: Optional[str] = None
    default: Any = MISSING
    required: bool = True


@dataclass
class ParamMetadata:
    kind: ParamKind
    name: str
    annotation: Any = None
    default: Any = MISSING
    required: bool = True


def PathVariable(name: Optional[str] = None) -> Any:
    return ParamMarker(ParamKind.PATH, name=name)


def QueryParam(
    name: Optional[str] = None, default: Any = MISSING, required: bool = True
) -> Any:
    """A query-string parameter; optional when a default is given."""
    return ParamMarker(
        ParamKind.QUERY,
        name=name,
        default=default,
        required=required and default is MISSING,
    )


def RequestBody() -> Any:
    return ParamMarker(ParamKind.BODY)


def path_variables(path: str):
    return set(_PATH_PARAM.findall(path))


def extract_param_metadata(handler: Callable, path: str = "") -> Dict[str, ParamMetadata]:
    """
    Work out how each handler parameter is bound.

    Explicit markers win. Otherwise a ``Request`` or ``Pageable`` annotation
    selects injection, a name appearing in the route path is a path
    variable, and anything else is a query parameter.
    """
    signature = inspect.signature(handler)
    try:
        hints = typing.get_type_hints(handler)
    except NameError:
        hints = {}
    in_path = path_variables(path)

    metadata: Dict[str, ParamMetadata] = {}
    for param_name, param in signature.parameters.items():
        if param_name == "self":
            continue
        annotation = hints.get(param_name, param.annotation)
        default = param.default

        if isinstance(default, ParamMarker):
            metadata[param_name] = ParamMetadata(
                kind=default.kind,
                name=default.name or param_name,
                annotation=annotation,
                default=default.default,
                required=default.required,
            )
        elif annotation is Request:
            metadata[param_name] = ParamMetadata(ParamKind.REQUEST, param_name, annotation)
        elif annotation is Pageable:
            metadata[param_name] = ParamMetadata(ParamKind.PAGEABLE, param_name, annotation)
        elif param_name in in_path:
            metadata[param_name] = ParamMetadata(ParamKind.PATH, param_name, annotation)
        else:
            metadata[param_name] = ParamMetadata(
                ParamKind.QUERY,
                param_name,
                annotation,
                default=default,
                required=default is MISSING,
            )
    return metadata
