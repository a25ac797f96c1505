from dataclasses import dataclass
from typing import Optional

from twentyonepoints.core.container import get_container
from twentyonepoints.core.enums import StereotypeType

ROUTE_ATTRIBUTE = "__twentyonepoints_route__"


@dataclass
class RouteMetadata:
    method: str
    path: str


def RestController(path: str = "", name: Optional[str] = None):
    """
    Register a class whose mapped methods become HTTP routes under ``path``.

        @RestController("/api")
        class UserResource:
            @GetMapping("/users/{id}")
            async def get_user(self, id: int = PathVariable()):
                ...
    """

    def decorator(cls):
        cls.__twentyonepoints_component__ = True
        cls.__twentyonepoints_base_path__ = path
        cls._stereotype_subtype = StereotypeType.CONTROLLER
        get_container().register(cls, name=name)
        return cls

    return decorator


def _mapping(method: str, path: str):
    def decorator(func):
        setattr(func, ROUTE_ATTRIBUTE, RouteMetadata(method=method, path=path))
        return func

    return decorator


def GetMapping(path: str = ""):
    return _mapping("GET", path)


def PostMapping(path: str = ""):
    return _mapping("POST", path)


def PutMapping(path: str = ""):
    return _mapping("PUT", path)


def DeleteMapping(path: str = ""):
    return _mapping("DELETE", path)
