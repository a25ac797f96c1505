import json
import typing
from typing import Any, Dict

from starlette.requests import Request

from twentyonepoints.data.entity import INTEGER_MAX, INTEGER_MIN, entity_from_dict, is_entity
from twentyonepoints.data.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Pageable
from twentyonepoints.exceptions import RequestValidationException
from twentyonepoints.web.params import MISSING, ParamKind, ParamMetadata


def _convert(value: str, annotation: Any, name: str) -> Any:
    origin = typing.get_origin(annotation)
    if origin is typing.Union:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        annotation = args[0] if len(args) == 1 else str

    if annotation in (MISSING, None, str, Any):
        return value
    try:
        if annotation is bool:
            lowered = value.lower()
            if lowered in ("true", "1", "yes"):
                return True
            if lowered in ("false", "0", "no"):
                return False
            raise ValueError(value)
        if annotation is int:
            converted = int(value)
            if not INTEGER_MIN <= converted <= INTEGER_MAX:
                raise RequestValidationException(
                    f"Parameter '{name}' is out of range: {value!r}"
                )
            return converted
        if annotation is float:
            return float(value)
    except ValueError:
        raise RequestValidationException(
            f"Parameter '{name}' must be of type {annotation.__name__}, got {value!r}"
        ) from None
    return value


class ParameterBinder:
    """Builds handler keyword arguments from a Starlette request."""

    def __init__(self, default_page_size: int = DEFAULT_PAGE_SIZE, max_page_size: int = MAX_PAGE_SIZE):
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    async def bind_parameters(
        self, request: Request, param_metadata: Dict[str, ParamMetadata]
    ) -> Dict[str, Any]:
        arguments = {}
        for param_name, meta in param_metadata.items():
            arguments[param_name] = await self._bind(request, meta)
        return arguments

    async def _bind(self, request: Request, meta: ParamMetadata) -> Any:
        if meta.kind == ParamKind.REQUEST:
            return request

        if meta.kind == ParamKind.PAGEABLE:
            return Pageable.from_query_params(
                request.query_params, self.default_page_size, self.max_page_size
            )

        if meta.kind == ParamKind.PATH:
            raw = request.path_params.get(meta.name)
            if raw is None:
                raise RequestValidationException(f"Missing path variable '{meta.name}'")
            if not isinstance(raw, str):
                return raw
            return _convert(raw, meta.annotation, meta.name)

        if meta.kind == ParamKind.QUERY:
            raw = request.query_params.get(meta.name)
            if raw is None:
                if meta.required:
                    raise RequestValidationException(
                        f"Required request parameter '{meta.name}' is not present"
                    )
                return None if meta.default is MISSING else meta.default
            return _convert(raw, meta.annotation, meta.name)

        if meta.kind == ParamKind.BODY:
            return await self._bind_body(request, meta)

        raise RequestValidationException(f"Cannot bind parameter '{meta.name}'")

    async def _bind_body(self, request: Request, meta: ParamMetadata) -> Any:
        raw = await request.body()
        if not raw:
            raise RequestValidationException("Required request body is missing")
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RequestValidationException(f"Malformed JSON request body: {e}") from None

        if meta.annotation is not MISSING and is_entity(meta.annotation):
            return entity_from_dict(meta.annotation, data)
        return data
