import inspect
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type, get_type_hints

from twentyonepoints.core.enums import Scope
from twentyonepoints.exceptions import DependencyResolutionException


@dataclass
class ComponentDefinition:
    cls: Type
    name: str
    scope: Scope = Scope.SINGLETON


class DIContainer:
    """
    Dependency injection container.

    Components are built lazily on first ``get`` and their constructor
    parameters are resolved from type hints. Singleton creation is guarded
    by a re-entrant lock so concurrent requests share one instance.
    """

    def __init__(self):
        self._components: Dict[Type, ComponentDefinition] = {}
        self._names: Dict[str, Type] = {}
        self._singletons: Dict[Type, Any] = {}
        self._lock = threading.RLock()

    def register(
        self, cls: Type, name: Optional[str] = None, scope: Scope = Scope.SINGLETON
    ):
        name = name or cls.__name__
        with self._lock:
            self._components[cls] = ComponentDefinition(cls, name, scope)
            self._names[name] = cls

    def register_instance(self, cls: Type, instance: Any, name: Optional[str] = None):
        """Register an already-built object as the singleton for ``cls``."""
        with self._lock:
            self.register(cls, name=name)
            self._singletons[cls] = instance

    def has(self, cls: Type) -> bool:
        return cls in self._components

    def get(self, cls: Type) -> Any:
        with self._lock:
            definition = self._components.get(cls)
            if definition is None:
                if not getattr(cls, "__twentyonepoints_component__", False):
                    raise DependencyResolutionException(
                        f"No component registered for {cls.__name__}"
                    )
                self.register(cls)
                definition = self._components[cls]

            if definition.scope == Scope.SINGLETON:
                if cls not in self._singletons:
                    self._singletons[cls] = self._create(cls)
                return self._singletons[cls]

            return self._create(cls)

    def get_by_name(self, name: str) -> Any:
        with self._lock:
            cls = self._names.get(name)
        if cls is None:
            raise DependencyResolutionException(f"No component named '{name}'")
        return self.get(cls)

    def _create(self, cls: Type) -> Any:
        init = cls.__init__
        if init is object.__init__:
            return cls()

        try:
            hints = get_type_hints(init)
        except NameError as e:
            raise DependencyResolutionException(
                f"Cannot resolve constructor hints of {cls.__name__}: {e}"
            ) from e

        kwargs = {}
        for param_name, param in inspect.signature(init).parameters.items():
            if param_name == "self" or param.kind in (
                inspect.Parameter.VAR_POSITIONAL,
                inspect.Parameter.VAR_KEYWORD,
            ):
                continue
            dependency = hints.get(param_name)
            if dependency is None or not inspect.isclass(dependency):
                if param.default is inspect.Parameter.empty:
                    raise DependencyResolutionException(
                        f"Parameter '{param_name}' of {cls.__name__} has no injectable type"
                    )
                continue
            if not self.has(dependency) and not getattr(
                dependency, "__twentyonepoints_component__", False
            ):
                if param.default is not inspect.Parameter.empty:
                    continue
            kwargs[param_name] = self.get(dependency)

        return cls(**kwargs)


_container: Optional[DIContainer] = None
_container_lock = threading.Lock()


def get_container() -> DIContainer:
    global _container
    if _container is None:
        with _container_lock:
            if _container is None:
                _container = DIContainer()
    return _container


def set_container(container: DIContainer):
    global _container
    with _container_lock:
        _container = container
