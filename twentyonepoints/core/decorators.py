from typing import Optional

from twentyonepoints.core.container import get_container
from twentyonepoints.core.enums import Scope, StereotypeType


def _mark_component(
    cls, stereotype: StereotypeType, name: Optional[str], scope: Scope
):
    cls.__twentyonepoints_component__ = True
    cls._stereotype_subtype = stereotype
    get_container().register(cls, name=name, scope=scope)
    return cls


def Component(name: Optional[str] = None, scope: Scope = Scope.SINGLETON):
    """Register a class with the container."""

    def decorator(cls):
        return _mark_component(cls, StereotypeType.COMPONENT, name, scope)

    return decorator


def Service(name: Optional[str] = None, scope: Scope = Scope.SINGLETON):
    """Register a service-layer class with the container."""

    def decorator(cls):
        return _mark_component(cls, StereotypeType.SERVICE, name, scope)

    return decorator
