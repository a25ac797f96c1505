import inspect
from typing import Any, Callable, Dict, List

from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from twentyonepoints.core.container import get_container
from twentyonepoints.core.logging import get_logger
from twentyonepoints.exceptions import BadRequestAlertException, RequestValidationException
from twentyonepoints.web.headers import HeaderUtil
from twentyonepoints.web.mappings import ROUTE_ATTRIBUTE, RouteMetadata
from twentyonepoints.web.parameter_binder import ParameterBinder
from twentyonepoints.web.params import ParamMetadata, extract_param_metadata
from twentyonepoints.web.response import ResponseEntity
from twentyonepoints.web.serialization import serialize_json

logger = get_logger(__name__)

JSON_CONTENT_TYPE = "application/json"
PROBLEM_CONTENT_TYPE = "application/problem+json"


class RouteBuilder:
    """Builds Starlette routes from the mapped methods of controllers."""

    def __init__(
        self,
        controllers: List[type],
        parameter_binder: ParameterBinder,
        header_util: HeaderUtil,
        ignore_trailing_slash: bool = True,
        debug_mode: bool = False,
    ):
        self.controllers = controllers
        self.parameter_binder = parameter_binder
        self.header_util = header_util
        self.ignore_trailing_slash = ignore_trailing_slash
        self.debug_mode = debug_mode

    def build_routes(self) -> List[Route]:
        routes = []
        container = get_container()

        for controller_cls in self.controllers:
            controller_instance = container.get(controller_cls)
            base_path = getattr(controller_cls, "__twentyonepoints_base_path__", "")

            for name, method in inspect.getmembers(
                controller_instance, predicate=inspect.ismethod
            ):
                route_meta = getattr(method, ROUTE_ATTRIBUTE, None)
                if route_meta is None:
                    continue

                full_path = self._combine_paths(base_path, route_meta.path)
                param_metadata = extract_param_metadata(method, full_path)
                endpoint = self._create_endpoint(method, param_metadata, route_meta)

                routes.append(
                    Route(path=full_path, endpoint=endpoint, methods=[route_meta.method])
                )

                # Register /path/ as well as /path
                if (
                    self.ignore_trailing_slash
                    and len(full_path) > 1
                    and not full_path.endswith("/")
                ):
                    routes.append(
                        Route(
                            path=full_path + "/",
                            endpoint=endpoint,
                            methods=[route_meta.method],
                        )
                    )
                logger.debug(f"Mapped {route_meta.method} {full_path} -> {controller_cls.__name__}.{name}")

        # Specific paths before parameterized paths
        routes.sort(key=self._route_priority)
        return routes

    def _create_endpoint(
        self,
        handler: Callable,
        param_metadata: Dict[str, ParamMetadata],
        route_meta: RouteMetadata,
    ):
        has_params = bool(param_metadata)

        async def endpoint(request: Request):
            try:
                if has_params:
                    handler_args = await self.parameter_binder.bind_parameters(
                        request, param_metadata
                    )
                    result = await handler(**handler_args)
                else:
                    result = await handler()
                return self._to_response(result)

            except BadRequestAlertException as e:
                logger.debug(f"Bad request on {route_meta.method} {request.url.path}: {e}")
                return Response(
                    content=serialize_json(e.to_problem()),
                    status_code=400,
                    headers={
                        "content-type": PROBLEM_CONTENT_TYPE,
                        **self.header_util.failure_alert(e.entity_name, e.error_key),
                    },
                )
            except (ValueError, RequestValidationException) as e:
                logger.debug(f"Invalid request on {route_meta.method} {request.url.path}: {e}")
                return self._json_error(400, {"error": str(e)})
            except Exception as e:
                if self.debug_mode:
                    logger.exception("Error handling request")
                    return self._json_error(500, {"error": str(e), "type": type(e).__name__})
                logger.error(f"Internal server error: {e}")
                return self._json_error(500, {"error": "Internal server error"})

        return endpoint

    @staticmethod
    def _json_error(status: int, payload: Dict[str, Any]) -> Response:
        return Response(
            content=serialize_json(payload),
            status_code=status,
            headers={"content-type": JSON_CONTENT_TYPE},
        )

    @staticmethod
    def _to_response(result: Any) -> Response:
        if isinstance(result, Response):
            return result

        if not isinstance(result, ResponseEntity):
            return Response(
                content=serialize_json(result),
                status_code=200,
                headers={"content-type": JSON_CONTENT_TYPE},
            )

        body = result.body
        headers = dict(result.headers)
        has_content_type = any(k.lower() == "content-type" for k in headers)

        if body is None:
            content = b""
        elif isinstance(body, bytes):
            content = body
            if not has_content_type:
                headers["content-type"] = "application/octet-stream"
        elif isinstance(body, str):
            content = body.encode("utf-8")
            if not has_content_type:
                headers["content-type"] = "text/plain; charset=utf-8"
        else:
            content = serialize_json(body)
            if not has_content_type:
                headers["content-type"] = JSON_CONTENT_TYPE

        return Response(content=content, status_code=result.status, headers=headers)

    @staticmethod
    def _combine_paths(base: str, route: str) -> str:
        base = base.rstrip("/")
        route = route.rstrip("/")

        if not route:
            return base or "/"
        if not base:
            return route or "/"
        return f"{base}{route}"

    @staticmethod
    def _route_priority(route: Route):
        segments = [s for s in route.path.split("/") if s]
        param_count = sum(1 for s in segments if s.startswith("{"))
        return (param_count, -len(segments), route.path)
